# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
import base64
from typing import Dict, List
from pathlib import Path

FAMILIES = ("delegation", "users", "todos", "checklists")


class Settings(BaseSettings):
    # Storage settings
    # Default to Google Sheets; STORAGE_BACKEND=memory runs on the in-process grid
    storage_backend: str = "sheets"
    google_sa_json: str = ""
    google_sa_json_base64: str = ""

    # Default spreadsheet for every family; per-family ids override it.
    # Can be spreadsheet_id OR full URL. Example:
    # SHEETS_SPREADSHEET_ID=https://docs.google.com/spreadsheets/d/<ID>/edit
    sheets_spreadsheet_id: str = ""
    delegation_spreadsheet_id: str = ""
    users_spreadsheet_id: str = ""
    todos_spreadsheet_id: str = ""
    checklists_spreadsheet_id: str = ""

    # Optional JSON file backing the memory grid (empty = not persisted)
    memory_store_path: str = ""

    # Header handling when row 1 lacks expected columns: strict | append | overwrite
    header_policy: str = "strict"
    # Seconds an ensured table stays trusted before its header is re-checked
    schema_cache_ttl: int = 600

    # Role that sees every delegation/notification (case-insensitive)
    privileged_role: str = "admin"
    timezone: str = "Asia/Kolkata"

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:3001,http://localhost:8000"

    sheets_max_retries: int = Field(default=3, ge=1, le=10)

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def resolved_google_sa_json(self) -> str:
        """
        Return the path to the service account JSON.
        If GOOGLE_SA_JSON_BASE64 is set, decode it to a temp file.
        Otherwise return GOOGLE_SA_JSON (path or inline JSON).
        """
        if self.google_sa_json_base64:
            import tempfile

            decoded = base64.b64decode(self.google_sa_json_base64)
            temp_file = tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.json')
            temp_file.write(decoded.decode('utf-8'))
            temp_file.close()
            return temp_file.name

        return self.google_sa_json

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def document_ids(self) -> Dict[str, str]:
        """
        Spreadsheet id per family, falling back to SHEETS_SPREADSHEET_ID.
        Full spreadsheet URLs are reduced to their id.
        """
        out = {}
        for family in FAMILIES:
            raw = getattr(self, f"{family}_spreadsheet_id") or self.sheets_spreadsheet_id
            out[family] = _extract_spreadsheet_id(raw) if raw else f"local-{family}"
        return out


def _extract_spreadsheet_id(value: str) -> str:
    s = value.strip()
    if "/d/" in s:
        s = s.split("/d/", 1)[1].split("/", 1)[0]
    return s


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
