# src/config/settings.py

"""Central configuration for the pharma_prices engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    """Read a boolean flag from the environment."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    """Central configuration for the pharma_prices engine."""

    # --- Outbound HTTP ---
    REQUEST_TIMEOUT: int = 10           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Attempts per source before fallback
    RETRY_BASE_DELAY: float = 1.0       # First backoff delay, doubled per retry

    # --- Cache ---
    PRICE_CACHE_TTL: float = 300.0      # Seconds a source result stays fresh
    PRICE_CACHE_ENABLED: bool = _env_flag("PRICE_CACHE_ENABLED", "true")

    # --- Synthetic data ---
    USE_SYNTHETIC_DATA: bool = _env_flag("USE_SYNTHETIC_DATA")

    # --- Analysis ---
    DEFAULT_REGION: str = "SP"
    DEFAULT_PHARMACY_ID: str = os.getenv(
        "PHARMACY_ID", "550e8400-e29b-41d4-a716-446655440000"
    )
    POSITION_THRESHOLD_PCT: float = 5.0     # |delta| that leaves "average"
    BELOW_SEVERITY_PCT: float = 15.0        # "below" gap worth repricing
    ABOVE_SEVERITY_PCT: float = 20.0        # "above" gap worth repricing

    # --- Provider credentials ---
    CLIQUEFARMA_API_KEY: str = os.getenv("CLIQUEFARMA_API_KEY", "")
    CLIQUEFARMA_BASE_URL: str = os.getenv(
        "CLIQUEFARMA_BASE_URL", "https://api.cliquefarma.com.br"
    )
    CONSULTAREMEDIOS_API_KEY: str = os.getenv(
        "CONSULTAREMEDIOS_API_KEY", ""
    )
    CONSULTAREMEDIOS_BASE_URL: str = os.getenv(
        "CONSULTAREMEDIOS_BASE_URL", "https://api.consultaremedios.com.br"
    )
    EXA_API_KEY: str = os.getenv("EXA_API_KEY", "")
    EXA_BASE_URL: str = os.getenv("EXA_BASE_URL", "https://api.exa.ai")
    EXA_SEARCH_PATH: str = "/search"
    EXA_NUM_RESULTS: int = 10

    # --- Web search price extraction ---
    MIN_PLAUSIBLE_PRICE: float = 1.0
    MAX_PLAUSIBLE_PRICE: float = 1000.0
    PHARMACY_DOMAINS: dict[str, str] = {
        "drogasil.com.br": "Drogasil",
        "drogaraia.com.br": "Droga Raia",
        "ultrafarma.com.br": "Ultrafarma",
        "paguemenos.com.br": "Pague Menos",
        "drogariasaopaulo.com.br": "Drogaria São Paulo",
        "drogariaspacheco.com.br": "Drogaria Pacheco",
        "farmaciasaojoao.com.br": "Farmácia São João",
        "panvel.com": "Panvel",
        "drogariaaraujo.com.br": "Drogaria Araujo",
        "farmaciasnissei.com.br": "Farmácias Nissei",
    }

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8",
        "User-Agent": "pharma-prices/0.1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    LOGS_DIR: Path = BASE_DIR / "logs"
    CATALOG_DB_PATH: Path = Path(
        os.getenv("CATALOG_DB_PATH", str(BASE_DIR / "data" / "catalog.db"))
    )

    # --- Sources (registry for future extensibility) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "cliquefarma",
            "label": "CliqueFarma",
            "client": "src.sources.cliquefarma_source.CliqueFarmaSource",
        },
        {
            "id": "consultaremedios",
            "label": "Consulta Remédios",
            "client": (
                "src.sources.consultaremedios_source"
                ".ConsultaRemediosSource"
            ),
        },
        {
            "id": "regional_survey",
            "label": "Regional Survey",
            "client": (
                "src.sources.regional_survey_source.RegionalSurveySource"
            ),
        },
        {
            "id": "exa",
            "label": "Exa Web Search",
            "client": "src.sources.exa_source.ExaSearchSource",
        },
    ]
