"""
Tel Aviv Stock Exchange (TLV) universe.

The TLV universe is a fixed list of common stocks with letter symbols. Yahoo
Finance quotes them with a ``.TA`` suffix, which is added and stripped here
so the rest of the pipeline only deals with plain symbols.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

YAHOO_SUFFIX = ".TA"
TLV_CURRENCY = "ILS"


@dataclass(frozen=True)
class TaseStock:
    """A TLV-listed stock."""
    symbol: str
    name: str
    currency: str = TLV_CURRENCY


TASE_STOCKS: List[TaseStock] = [
    TaseStock("AFPR", "Africa Israel Properties"),
    TaseStock("ALHE", "Alony Hetz Properties & Investments"),
    TaseStock("AMOT", "Amot Investments"),
    TaseStock("ASHG", "Ashtrom Group"),
    TaseStock("AZRG", "Azrieli Group"),
    TaseStock("BEZQ", "Bezeq The Israel Telecommunication Corp"),
    TaseStock("BIG", "BIG Shopping Centers"),
    TaseStock("CAMT", "Camtek"),
    TaseStock("CLIS", "Clal Insurance Enterprises Holdings"),
    TaseStock("DLEKG", "Delek Group"),
    TaseStock("DSCT", "Israel Discount Bank"),
    TaseStock("ELAL", "El Al Israel Airlines"),
    TaseStock("ELTR", "Electra"),
    TaseStock("ENLT", "Enlight Renewable Energy"),
    TaseStock("ENRG", "Energix Renewable Energies"),
    TaseStock("ESLT", "Elbit Systems"),
    TaseStock("FIBI", "First International Bank of Israel"),
    TaseStock("FTAL", "Fattal Holdings"),
    TaseStock("GZIT", "G City"),
    TaseStock("HARL", "Harel Insurance Investments & Financial Services"),
    TaseStock("ICL", "ICL Group"),
    TaseStock("ISRO", "Isrotel"),
    TaseStock("ITRN", "Ituran Location and Control"),
    TaseStock("KMDA", "Kamada"),
    TaseStock("LUMI", "Bank Leumi Le-Israel"),
    TaseStock("MGDL", "Migdal Insurance & Financial Holdings"),
    TaseStock("MLSR", "Melisron"),
    TaseStock("MMHD", "Menora Mivtachim Holdings"),
    TaseStock("MTAV", "Meitav Investment House"),
    TaseStock("MTRX", "Matrix IT"),
    TaseStock("MVNE", "Mivne Real Estate"),
    TaseStock("MZTF", "Mizrahi Tefahot Bank"),
    TaseStock("NICE", "NICE"),
    TaseStock("NVMI", "Nova"),
    TaseStock("NWMD", "NewMed Energy"),
    TaseStock("OPCE", "OPC Energy"),
    TaseStock("ORA", "Ormat Technologies"),
    TaseStock("OSEM", "Osem Investments"),
    TaseStock("PHOE", "The Phoenix Holdings"),
    TaseStock("POLI", "Bank Hapoalim"),
    TaseStock("SAE", "Shufersal"),
    TaseStock("SANO", "Sano-Bruno's Enterprises"),
    TaseStock("SKBN", "Shikun & Binui"),
    TaseStock("SPEN", "Shapir Engineering and Industry"),
    TaseStock("STRS", "Strauss Group"),
    TaseStock("TASE", "Tel Aviv Stock Exchange"),
    TaseStock("TEVA", "Teva Pharmaceutical Industries"),
    TaseStock("TSEM", "Tower Semiconductor"),
    TaseStock("UNIT", "Unitronics"),
]

# Hebrew display names for major TLV stocks
HEBREW_NAMES: Dict[str, str] = {
    "LUMI": "בנק לאומי",
    "TEVA": "טבע",
    "ESLT": "אלביט מערכות",
    "POLI": "בנק הפועלים",
    "MZTF": "בנק מזרחי טפחות",
    "AZRG": "קבוצת עזריאלי",
    "TSEM": "טאואר סמיקונדקטור",
    "DSCT": "בנק דיסקונט",
    "NVMI": "נובה",
    "PHOE": "הפניקס",
    "HARL": "הראל ביטוח",
    "FIBI": "הבנק הבינלאומי",
    "MMHD": "מנורה מבטחים",
    "OPCE": "או.פי.סי אנרגיה",
    "NWMD": "ניומד אנרג'י",
    "ORA": "אורמת",
    "NICE": "נייס",
    "ICL": "כיל",
    "ENLT": "אנלייט",
    "MLSR": "מליסרון",
    "CAMT": "קמטק",
    "BEZQ": "בזק",
    "BIG": "ביג",
    "MGDL": "מגדל ביטוח",
    "CLIS": "כלל ביטוח",
    "DLEKG": "קבוצת דלק",
    "STRS": "שטראוס",
    "AMOT": "עמות",
    "SKBN": "שיכון ובינוי",
    "MVNE": "מבנה נדל\"ן",
    "SPEN": "שפיר הנדסה",
    "FTAL": "פתאל",
    "SAE": "שופרסל",
    "TASE": "הבורסה",
    "AFPR": "אפי נכסים",
    "ISRO": "ישרוטל",
    "MTAV": "מיטב",
    "ENRG": "אנרג'יקס",
    "ELAL": "אל על",
    "ALHE": "אלוני חץ",
    "MTRX": "מטריקס",
    "ELTR": "אלקטרה",
    "ASHG": "אשטרום",
    "OSEM": "אוסם",
    "GZIT": "גזית גלוב",
    "ITRN": "איתוראן",
    "KMDA": "קמהדע",
    "UNIT": "יוניטרוניקס",
    "SANO": "סנו",
}

_STOCKS_BY_SYMBOL: Dict[str, TaseStock] = {stock.symbol: stock for stock in TASE_STOCKS}


def to_yahoo_symbol(symbol: str) -> str:
    """LUMI -> LUMI.TA"""
    return f"{symbol}{YAHOO_SUFFIX}"


def from_yahoo_symbol(yahoo_symbol: str) -> str:
    """LUMI.TA -> LUMI"""
    if yahoo_symbol.endswith(YAHOO_SUFFIX):
        return yahoo_symbol[:-len(YAHOO_SUFFIX)]
    return yahoo_symbol


def get_tase_symbols() -> List[str]:
    """All TLV symbols, without the Yahoo suffix."""
    return [stock.symbol for stock in TASE_STOCKS]


def get_hebrew_name(symbol: str) -> Optional[str]:
    return HEBREW_NAMES.get(from_yahoo_symbol(symbol))


def get_english_name(symbol: str) -> Optional[str]:
    stock = get_tase_stock_info(symbol)
    return stock.name if stock else None


def get_tase_stock_info(symbol: str) -> Optional[TaseStock]:
    return _STOCKS_BY_SYMBOL.get(from_yahoo_symbol(symbol))


def is_tase_symbol(symbol: str) -> bool:
    return from_yahoo_symbol(symbol) in _STOCKS_BY_SYMBOL
