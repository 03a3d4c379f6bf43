from flask import Blueprint, jsonify
from flask_login import login_required

from keystone_app import calculators
from keystone_app.routes import json_body
from keystone_app.schemas import (
    MortgagePayload,
    RefinancePayload,
    RentVsBuyPayload,
    parse_payload,
)

calculators_bp = Blueprint("calculators", __name__, url_prefix="/api/calculators")


@calculators_bp.route("/mortgage", methods=["POST"])
@login_required
def mortgage():
    payload = parse_payload(MortgagePayload, json_body())
    return jsonify(
        calculators.mortgage_summary(
            payload.home_price, payload.down_payment, payload.interest_rate, payload.loan_term
        )
    )


@calculators_bp.route("/refinance", methods=["POST"])
@login_required
def refinance():
    payload = parse_payload(RefinancePayload, json_body())
    return jsonify(
        calculators.refinance(
            payload.current_balance,
            payload.current_rate,
            payload.remaining_years,
            payload.new_rate,
            payload.new_term,
            payload.closing_costs,
        )
    )


@calculators_bp.route("/rent-vs-buy", methods=["POST"])
@login_required
def rent_vs_buy():
    payload = parse_payload(RentVsBuyPayload, json_body())
    return jsonify(
        calculators.rent_vs_buy(
            payload.monthly_rent,
            payload.home_price,
            payload.down_payment,
            payload.interest_rate,
            payload.loan_term,
        )
    )
