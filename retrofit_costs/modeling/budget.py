"""
Budget breakdown from direct costs to the amount including VAT.

All markups are percentages of the direct costs plus custom amounts; the
subtotals accumulate in the order the quotation shows them.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional

from retrofit_costs.modeling.settings import CalculationSettings


@dataclass
class BudgetBreakdown:
    direct_costs: float
    custom_amounts: float
    subtotal_direct_and_custom: float
    abk_materieel: float
    subtotal_after_abk: float
    afkoop: float
    subtotal_after_afkoop: float
    planuitwerking: float
    subtotal_after_planuitwerking: float
    nazorg_service: float
    car_pi_dic: float
    bankgarantie: float
    algemene_kosten: float
    risico: float
    winst: float
    subtotal_bouwkosten: float
    planvoorbereiding: float
    huurdersbegeleiding: float
    subtotal_after_bijkomende_kosten: float
    total_excl_vat: float
    vat: float
    final_amount: float
    price_per_unit_incl_vat: float
    price_per_unit_excl_vat: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def calculate_budget_breakdown(
    total_amount: float,
    settings: Optional[CalculationSettings] = None,
    number_of_units: int = 0,
) -> BudgetBreakdown:
    """
    Apply markups and VAT to the summed investment of the selected measures.

    Args:
        total_amount: Sum of the measure prices (direct costs)
        settings: Markup and VAT percentages
        number_of_units: Number of dwellings, for per-unit prices

    Returns:
        BudgetBreakdown with every intermediate amount
    """
    settings = settings or CalculationSettings()

    def share(percentage: float) -> float:
        return subtotal * (percentage / 100)

    direct = max(0.0, float(total_amount))
    custom = sum(settings.custom_amounts) if direct > 0 else 0.0
    subtotal = direct + custom

    abk = share(settings.abkMaterieel)
    after_abk = subtotal + abk
    afkoop = share(settings.afkoop)
    after_afkoop = after_abk + afkoop
    planuitwerking = share(settings.kostenPlanuitwerking)
    after_planuitwerking = after_afkoop + planuitwerking

    nazorg = share(settings.nazorgService)
    car_pi_dic = share(settings.carPiDicVerzekering)
    bankgarantie = share(settings.bankgarantie)
    algemene_kosten = share(settings.algemeneKosten)
    risico = share(settings.risico)
    winst = share(settings.winst)
    bouwkosten = (
        after_planuitwerking + nazorg + car_pi_dic + bankgarantie
        + algemene_kosten + risico + winst
    )

    planvoorbereiding = share(settings.planvoorbereiding)
    huurdersbegeleiding = share(settings.huurdersbegeleiding)
    after_bijkomend = bouwkosten + planvoorbereiding + huurdersbegeleiding

    total_excl_vat = after_bijkomend
    vat = total_excl_vat * (settings.vatPercentage / 100)
    final_amount = total_excl_vat + vat

    units = max(0, int(number_of_units or 0))

    return BudgetBreakdown(
        direct_costs=direct,
        custom_amounts=custom,
        subtotal_direct_and_custom=subtotal,
        abk_materieel=abk,
        subtotal_after_abk=after_abk,
        afkoop=afkoop,
        subtotal_after_afkoop=after_afkoop,
        planuitwerking=planuitwerking,
        subtotal_after_planuitwerking=after_planuitwerking,
        nazorg_service=nazorg,
        car_pi_dic=car_pi_dic,
        bankgarantie=bankgarantie,
        algemene_kosten=algemene_kosten,
        risico=risico,
        winst=winst,
        subtotal_bouwkosten=bouwkosten,
        planvoorbereiding=planvoorbereiding,
        huurdersbegeleiding=huurdersbegeleiding,
        subtotal_after_bijkomende_kosten=after_bijkomend,
        total_excl_vat=total_excl_vat,
        vat=vat,
        final_amount=final_amount,
        price_per_unit_incl_vat=final_amount / units if units else 0.0,
        price_per_unit_excl_vat=total_excl_vat / units if units else 0.0,
    )
