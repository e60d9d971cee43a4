"""South African banks Paystack can settle to, with their branch codes."""

from typing import Optional

SOUTH_AFRICAN_BANKS: dict[str, str] = {
    "Absa Bank": "632005",
    "African Bank": "430000",
    "Bank of Athens": "410506",
    "Barclays Bank": "590000",
    "Bidvest Bank": "679000",
    "Capitec Bank": "470010",
    "Discovery Bank": "679000",
    "First National Bank (FNB)": "250655",
    "Hollard Bank": "585001",
    "Investec Bank": "580105",
    "Mercantile Bank": "450905",
    "Nedbank": "198765",
    "RMB Private Bank": "222026",
    "Sasfin Bank": "683000",
    "South African Post Bank (Post Office)": "460005",
    "Standard Bank": "051001",
    "Standard Chartered Bank": "730020",
    "TymeBank": "678910",
}


def list_banks() -> list[dict[str, str]]:
    return [{"name": name, "code": code} for name, code in SOUTH_AFRICAN_BANKS.items()]


def bank_code_for(bank_name: str) -> Optional[str]:
    """Case-insensitive lookup by bank name."""
    wanted = bank_name.strip().lower()
    for name, code in SOUTH_AFRICAN_BANKS.items():
        if name.lower() == wanted:
            return code
    return None
