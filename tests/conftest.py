import pytest

import db
import utils


class FakeUpload:
    """Stands in for werkzeug's FileStorage: filename, mimetype, save(path)."""

    def __init__(self, data=b"\x89PNG fake image", filename="pic.png", mimetype="image/png"):
        self.data = data
        self.filename = filename
        self.mimetype = mimetype
        self.saved_to = None

    def save(self, dst):
        self.saved_to = dst
        with open(dst, "wb") as fh:
            fh.write(self.data)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def gym_db(tmp_path, upload_dir, monkeypatch):
    db_path = tmp_path / "gym_test.db"
    monkeypatch.setattr(db, "DB_FILE", db_path)
    monkeypatch.setattr(utils, "UPLOAD_DIR", upload_dir)
    db.init_db()
    return db_path


@pytest.fixture
def client(gym_db):
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def make_upload():
    return FakeUpload
