"""
app.py
Flask HTTP API for the gym billing backend.
Run: flask --app app init-db && flask --app app run
"""

from __future__ import annotations

import logging
from io import BytesIO

import click
from flask import Flask, Response, jsonify, request, send_file
from werkzeug.exceptions import HTTPException

import auth
import billing
import config
import db
import followups
import invoice
import utils

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

IMAGE_CACHE_CONTROL = "public, max-age=31536000"


def _payload():
    """JSON body when one was sent, otherwise the (multipart) form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


@app.before_request
def ensure_tables():
    db.init_db()


# ---------- Errors ----------

@app.errorhandler(billing.NotFoundError)
def handle_not_found(exc):
    return jsonify({"message": str(exc)}), 404


@app.errorhandler(billing.BillingError)
def handle_bad_request(exc):
    return jsonify({"message": str(exc)}), 400


@app.errorhandler(Exception)
def handle_unexpected(exc):
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"message": "Unexpected error", "error": str(exc)}), 500


# ---------- Bills ----------

@app.route("/bills", methods=["POST"])
def create_bill():
    bill = billing.create_bill(_payload(), request.files.get("profilePicture"))
    return jsonify({
        "message": "Gym Bill Created Successfully",
        "memberId": bill["memberId"],
        "data": bill,
    }), 201


@app.route("/bills", methods=["GET"])
def list_bills():
    return jsonify(billing.list_bills())


@app.route("/bills/image/<bill_id>", methods=["GET"])
def get_image(bill_id):
    data, content_type = billing.get_image(bill_id)
    resp = Response(data, content_type=content_type)
    resp.headers["Cache-Control"] = IMAGE_CACHE_CONTROL
    return resp


@app.route("/bills/<bill_id>", methods=["PUT"])
def update_bill(bill_id):
    return jsonify(billing.update_bill(bill_id, _payload(), request.files.get("profilePicture")))


@app.route("/bills/renew/<bill_id>", methods=["PUT"])
def renew_bill(bill_id):
    bill = billing.renew_bill(bill_id, _payload())
    return jsonify({"message": "Membership renewed successfully", "data": bill})


@app.route("/bills/renew/edit/<client_id>/<renew_id>", methods=["PUT"])
def edit_renewal(client_id, renew_id):
    result = billing.edit_renewal(client_id, renew_id, _payload())
    return jsonify({"message": "Renewal entry updated", "data": result})


@app.route("/bills/renew/delete/<client_id>/<renew_id>", methods=["DELETE"])
def delete_renewal(client_id, renew_id):
    bill = billing.delete_renewal(client_id, renew_id)
    return jsonify({"message": "Renewal entry deleted", "data": bill})


@app.route("/bills/<bill_id>", methods=["DELETE"])
def delete_bill(bill_id):
    billing.delete_bill(bill_id)
    return jsonify({"message": "Client deleted successfully"})


@app.route("/bills/payment/<bill_id>", methods=["PUT"])
def record_payment(bill_id):
    bill = billing.record_payment(bill_id, _payload())
    return jsonify({"message": "Payment updated successfully", "data": bill})


@app.route("/bills/<bill_id>/invoice", methods=["GET"])
def download_invoice(bill_id):
    bill = billing.get_bill(bill_id)
    picture = None
    if bill.get("profilePicture"):
        picture, _ = billing.get_image(bill_id)
    pdf = invoice.render_invoice(bill, picture)
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"invoice-{bill['memberId']}.pdf",
    )


# ---------- Reports ----------

@app.route("/bills/export.csv", methods=["GET"])
def export_bills():
    return Response(
        utils.bills_to_csv_bytes(billing.list_bills()),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=bills.csv"},
    )


@app.route("/bills/revenue", methods=["GET"])
def revenue_by_month():
    summary = utils.revenue_summary_by_month(billing.list_bills())
    return jsonify(summary.to_dict(orient="records"))


# ---------- Followups ----------

@app.route("/followups", methods=["GET"])
def list_followups():
    return jsonify(followups.list_followups(request.args.get("client")))


# ---------- CLI ----------

@app.cli.command("init-db")
@click.option("--username", default=None, help="Admin username (default from GYM_ADMIN_USERNAME).")
@click.option("--password", default=None, help="Admin password (default from GYM_ADMIN_PASSWORD).")
def init_db_command(username, password):
    """Create tables and seed the admin user once."""
    if auth.seed_admin(username, password):
        click.echo("Admin user created")
    else:
        click.echo("Admin already exists")


if __name__ == "__main__":
    app.run()
