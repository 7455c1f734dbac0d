"""
MTGJSON SQL Constants that cannot be changed and are hardcoded intentionally
"""

import os
import pathlib
from typing import Dict

TOP_LEVEL_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
RESOURCE_PATH: pathlib.Path = TOP_LEVEL_DIR.joinpath("mtgjson_sql").joinpath("resources")
CONFIG_PATH: pathlib.Path = RESOURCE_PATH.joinpath("mtgjson_sql.properties")

DEFAULT_CACHE_PATH: pathlib.Path = (
    pathlib.Path(
        os.environ.get("XDG_CACHE_HOME", pathlib.Path.home().joinpath(".cache"))
    )
    .expanduser()
    .joinpath("mtgjson-sql")
)
LOG_PATH: pathlib.Path = DEFAULT_CACHE_PATH.joinpath("logs")
HTTP_CACHE_PATH: pathlib.Path = DEFAULT_CACHE_PATH.joinpath("http")

CDN_BASE: str = "https://mtgjson.com/api/v5"
META_URL: str = f"{CDN_BASE}/Meta.json"

VERSION_FILE_NAME: str = "version.txt"
MANIFEST_FILE_NAME: str = "manifest.json"

# Logical view name -> path under the CDN base (and under the cache dir)
PARQUET_FILES: Dict[str, str] = {
    "cards": "parquet/cards.parquet",
    "tokens": "parquet/tokens.parquet",
    "sets": "parquet/sets.parquet",
    "card_identifiers": "parquet/cardIdentifiers.parquet",
    "card_legalities": "parquet/cardLegalities.parquet",
    "card_foreign_data": "parquet/cardForeignData.parquet",
    "card_rulings": "parquet/cardRulings.parquet",
    "card_purchase_urls": "parquet/cardPurchaseUrls.parquet",
    "set_translations": "parquet/setTranslations.parquet",
    "token_identifiers": "parquet/tokenIdentifiers.parquet",
    "set_booster_content_weights": "parquet/setBoosterContentWeights.parquet",
    "set_booster_contents": "parquet/setBoosterContents.parquet",
    "set_booster_sheet_cards": "parquet/setBoosterSheetCards.parquet",
    "set_booster_sheets": "parquet/setBoosterSheets.parquet",
    "tcgplayer_skus": "parquet/TcgplayerSkus.parquet",
}

# Nested per-card price trees, flattened on load
PRICE_FILES: Dict[str, str] = {
    "all_prices_today": "AllPricesToday.json.gz",
    "all_prices": "AllPrices.json.gz",
}

JSON_FILES: Dict[str, str] = {
    "keywords": "Keywords.json",
    "card_types": "CardTypes.json",
    "enum_values": "EnumValues.json",
    "meta": "Meta.json",
}

LEGALITIES_VIEW: str = "card_legalities"
