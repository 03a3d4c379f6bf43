"""Mortgage, refinance and rent-vs-buy math. All rates are annual percentages."""

import math

PROPERTY_TAX_RATE = 0.015
ANNUAL_INSURANCE = 1200.0
MAINTENANCE_RATE = 0.01


def _money(value):
    return round(value, 2)


def monthly_payment(principal, annual_rate_pct, years):
    """Standard annuity payment; ``principal / n`` when the rate is zero."""
    if principal <= 0 or years <= 0:
        return 0.0
    periods = int(years * 12)
    rate = annual_rate_pct / 100 / 12
    if rate == 0:
        return principal / periods
    growth = (1 + rate) ** periods
    return principal * rate * growth / (growth - 1)


def total_interest(principal, annual_rate_pct, years):
    if principal <= 0 or years <= 0:
        return 0.0
    return monthly_payment(principal, annual_rate_pct, years) * int(years * 12) - principal


def amortization_schedule(principal, annual_rate_pct, years):
    payment = monthly_payment(principal, annual_rate_pct, years)
    if payment == 0:
        return []
    rate = annual_rate_pct / 100 / 12
    balance = float(principal)
    schedule = []
    for year in range(1, int(years) + 1):
        interest_paid = 0.0
        principal_paid = 0.0
        for _ in range(12):
            interest = balance * rate
            reduction = min(payment - interest, balance)
            balance -= reduction
            interest_paid += interest
            principal_paid += reduction
        schedule.append(
            {
                "year": year,
                "interest": _money(interest_paid),
                "principal": _money(principal_paid),
                "balance": _money(max(balance, 0.0)),
            }
        )
    return schedule


def mortgage_summary(home_price, down_payment, interest_rate, loan_term):
    principal = max(home_price - down_payment, 0)
    payment = monthly_payment(principal, interest_rate, loan_term)
    return {
        "principal": _money(principal),
        "monthlyPayment": _money(payment),
        "totalPayment": _money(payment * int(loan_term * 12)),
        "totalInterest": _money(total_interest(principal, interest_rate, loan_term)),
        "schedule": amortization_schedule(principal, interest_rate, loan_term),
    }


def refinance(current_balance, current_rate, remaining_years, new_rate, new_term, closing_costs=0):
    current_payment = monthly_payment(current_balance, current_rate, remaining_years)
    new_payment = monthly_payment(current_balance, new_rate, new_term)
    savings = current_payment - new_payment
    if savings > 0:
        break_even = math.ceil(closing_costs / savings) if closing_costs else 0
    else:
        break_even = None
    interest_delta = total_interest(current_balance, new_rate, new_term) - total_interest(
        current_balance, current_rate, remaining_years
    )
    return {
        "currentPayment": _money(current_payment),
        "newPayment": _money(new_payment),
        "monthlySavings": _money(savings),
        "breakEvenMonths": break_even,
        "lifetimeInterestDelta": _money(interest_delta),
        "closingCosts": _money(closing_costs),
    }


def rent_vs_buy(monthly_rent, home_price, down_payment, interest_rate, loan_term=30):
    mortgage = monthly_payment(max(home_price - down_payment, 0), interest_rate, loan_term)
    property_tax = home_price * PROPERTY_TAX_RATE / 12
    insurance = ANNUAL_INSURANCE / 12
    maintenance = home_price * MAINTENANCE_RATE / 12
    ownership = mortgage + property_tax + insurance + maintenance
    return {
        "monthlyRent": _money(monthly_rent),
        "monthlyOwnership": _money(ownership),
        "breakdown": {
            "mortgage": _money(mortgage),
            "propertyTax": _money(property_tax),
            "insurance": _money(insurance),
            "maintenance": _money(maintenance),
        },
        "difference": _money(ownership - monthly_rent),
        "cheaper": "rent" if monthly_rent < ownership else "buy",
    }
