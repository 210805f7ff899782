"""
Projected returns for investment projects.
"""

from typing import Optional
from datetime import date
import math

from ..models.schemas import InvestmentProjection, InvestmentProject

# Yearly rate of a USD fixed-term deposit used as the baseline
FIXED_DEPOSIT_RATE = 5.0


def years_until(delivery_date: Optional[date], today: Optional[date] = None) -> int:
    """Whole years until delivery, rounded up, at least 1."""
    if delivery_date is None:
        return 1
    today = today or date.today()
    years = (delivery_date - today).days / 365
    return max(1, math.ceil(years))


def project_investment(
    amount: float,
    annual_return: float,
    capital_gain: float,
    delivery_date: Optional[date],
    today: Optional[date] = None,
) -> InvestmentProjection:
    """
    Project the value of an investment held until the project is delivered.

    Yearly returns accrue without compounding; the capital gain is added in
    the delivery year. The result is compared against a fixed deposit.

    Args:
        amount: Amount invested
        annual_return: Yearly return in percent
        capital_gain: Gain at delivery in percent
        delivery_date: Project delivery date
        today: Reference date

    Returns:
        InvestmentProjection with totals and yearly chart points
    """
    years = years_until(delivery_date, today)

    yearly_return = amount * (annual_return / 100)
    total_annual_return = yearly_return * years
    capital_gain_amount = amount * (capital_gain / 100)
    total_projected_value = amount + total_annual_return + capital_gain_amount

    fixed_deposit_return = amount * (FIXED_DEPOSIT_RATE / 100) * years
    fixed_deposit_total = amount + fixed_deposit_return
    difference = total_projected_value - fixed_deposit_total
    percentage_better = round(difference / fixed_deposit_total * 100, 1) if fixed_deposit_total else 0.0

    chart = []
    for year in range(years + 1):
        value = amount + yearly_return * year
        if year == years:
            value += capital_gain_amount
        chart.append({"year": year, "value": round(value)})

    return InvestmentProjection(
        amount=amount,
        years_until_delivery=years,
        yearly_return=yearly_return,
        total_annual_return=total_annual_return,
        capital_gain_amount=capital_gain_amount,
        total_projected_value=total_projected_value,
        fixed_deposit_return=fixed_deposit_return,
        fixed_deposit_total=fixed_deposit_total,
        difference=difference,
        percentage_better=percentage_better,
        chart=chart,
    )


def project_for(project: InvestmentProject, amount: Optional[float] = None,
                today: Optional[date] = None) -> InvestmentProjection:
    """
    Projection for a project; the amount defaults to its minimum investment.

    Raises:
        ValueError: if the amount is below the project minimum
    """
    if amount is None:
        amount = project.min_investment
    if amount < project.min_investment:
        raise ValueError(f"Minimum investment is {project.min_investment:,.0f}")
    return project_investment(
        amount, project.annual_return, project.capital_gain, project.delivery_date, today
    )
