# livrini/config/settings.py

"""Central configuration for the LIVRINI client."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the LIVRINI client."""

    # --- API ---
    API_BASE_URL: str = os.getenv(
        "LIVRINI_API_URL", "http://localhost:5000/api"
    )
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Attempts for idempotent reads
    RETRY_BACKOFF: float = 1.0          # Linear backoff step (secs)
    TOKEN_EXPIRY_SKEW: int = 300        # Seconds of tolerated clock skew

    # --- Transport ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
    }

    # --- Storage keys (browser-storage layout) ---
    TOKEN_KEY: str = "token"
    USER_KEY: str = "user"
    CART_KEY: str = "cart"
    WISHLIST_KEY: str = "wishlist"

    # --- Cart & pricing ---
    CURRENCY: str = "TND"
    PROMO_CODES: dict[str, int] = {
        "LIVRINI10": 10,
        "LIVRINI20": 20,
    }
    FREE_SHIPPING_THRESHOLD: float = 100.0
    SHIPPING_FEE: float = 7.0
    LOW_STOCK_THRESHOLD: int = 5

    # --- Delivery tracking ---
    WAREHOUSE: tuple[float, float] = (36.8065, 10.1815)
    DESTINATION: tuple[float, float] = (36.8400, 10.2200)
    ROUTE_POINTS: int = 100
    TRACKING_DURATION: float = 60.0     # Seconds for the full route
    TRACKING_ETA_MINUTES: int = 25
    FRAME_INTERVAL: float = 1 / 30

    # --- Health ---
    HEALTH_TIMEOUT: int = 10
    HEALTH_SLOW_MS: float = 5000.0
    HEALTH_ENDPOINTS: list[str] = ["/produits", "/categories"]

    # --- Roles ---
    ROLE_DASHBOARDS: dict[str, str] = {
        "admin": "admin-dashboard",
        "fournisseur": "fournisseur-dashboard",
        "client": "client-dashboard",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    STORAGE_PATH: Path = Path(
        os.getenv(
            "LIVRINI_STORAGE_PATH",
            str(BASE_DIR / "data" / "local_storage.json"),
        )
    )
    EXPORTS_DIR: Path = BASE_DIR / "exports"
    LOGS_DIR: Path = Path(
        os.getenv("LIVRINI_LOGS_DIR", str(BASE_DIR / "logs"))
    )

    # --- Logging ---
    CONSOLE_LOG_LEVEL: str = os.getenv("LIVRINI_LOG_LEVEL", "WARNING").upper()
