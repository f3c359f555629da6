# Nombre de archivo: config.py
# Ubicación de archivo: core/config.py
# Descripción: Configuración centralizada (entorno) para la API de gestión de reclamos

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from os import getenv
from pathlib import Path

from core.secrets import get_secret


def _as_bool(raw: str | None, default: bool = False) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


def _parse_transitions(raw: str | None) -> dict[str, tuple[str, ...]] | None:
    """Interpreta `New:Screening|Closed;Screening:Analyzing` como tabla de transiciones."""
    if not raw:
        return None
    table: dict[str, tuple[str, ...]] = {}
    for chunk in raw.split(";"):
        if ":" not in chunk:
            continue
        origin, targets = chunk.split(":", 1)
        table[origin.strip()] = tuple(t.strip() for t in targets.split("|") if t.strip())
    return table or None


@dataclass(slots=True)
class DatabaseSettings:
    url: str | None
    dsn: str | None

    @property
    def configured(self) -> bool:
        return bool(self.url)


@dataclass(slots=True)
class StorageSettings:
    """Almacenamiento de adjuntos subidos a los reclamos."""

    uploads_dir: Path
    public_base_url: str
    max_upload_bytes: int


@dataclass(slots=True)
class FallbackSettings:
    data_dir: Path


@dataclass(slots=True)
class LLMSettings:
    api_key: str | None
    base_url: str
    chat_model: str
    embedding_model: str
    timeout: float

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(slots=True)
class ChatSettings:
    match_count: int
    match_threshold: float
    history_turns: int
    max_tokens: int
    temperature: float
    default_context: str


@dataclass(slots=True)
class AuthSettings:
    demo_email: str
    demo_password: str
    session_secret: str


@dataclass(slots=True)
class WorkflowSettings:
    transitions: dict[str, tuple[str, ...]] | None


@dataclass(slots=True)
class IntakeSettings:
    """Parámetros del webhook que convierte correos en reclamos."""

    subject_marker: str
    default_department: str
    attachment_category: str


@dataclass(slots=True)
class Settings:
    database: DatabaseSettings
    storage: StorageSettings
    fallback: FallbackSettings
    llm: LLMSettings
    chat: ChatSettings
    auth: AuthSettings
    workflow: WorkflowSettings
    intake: IntakeSettings
    env: str
    log_level: str

    def __init__(self) -> None:
        data_dir = Path(getenv("CLAIMS_DATA_DIR", str(Path.cwd() / "data")))
        database_url = getenv("DATABASE_URL") or None
        self.database = DatabaseSettings(
            url=database_url,
            dsn=getenv("DATABASE_DSN") or _psycopg_dsn(database_url),
        )
        self.storage = StorageSettings(
            uploads_dir=Path(getenv("UPLOADS_DIR", str(data_dir / "uploads"))),
            public_base_url=getenv("UPLOADS_PUBLIC_URL", "/uploads").rstrip("/"),
            max_upload_bytes=int(getenv("UPLOAD_MAX_BYTES", str(10 * 1024 * 1024))),
        )
        self.fallback = FallbackSettings(data_dir=data_dir / "local")
        self.llm = LLMSettings(
            api_key=get_secret("OPENAI_API_KEY"),
            base_url=getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
            chat_model=getenv("CHAT_MODEL", "gpt-3.5-turbo"),
            embedding_model=getenv("EMBED_MODEL", "text-embedding-ada-002"),
            timeout=float(getenv("LLM_TIMEOUT", "30")),
        )
        self.chat = ChatSettings(
            match_count=int(getenv("CHAT_MATCH_COUNT", "5")),
            match_threshold=float(getenv("CHAT_MATCH_THRESHOLD", "0.5")),
            history_turns=int(getenv("CHAT_HISTORY_TURNS", "5")),
            max_tokens=int(getenv("CHAT_MAX_TOKENS", "500")),
            temperature=float(getenv("CHAT_TEMPERATURE", "0.3")),
            default_context=getenv(
                "CHAT_DEFAULT_CONTEXT",
                "Sos un asistente especializado en la gestión de reclamos de Venture Claims Management.",
            ),
        )
        self.auth = AuthSettings(
            demo_email=getenv("DEMO_USER_EMAIL", "demo@venture.com"),
            demo_password=get_secret("DEMO_USER_PASSWORD", "demo123") or "demo123",
            session_secret=get_secret("WEB_SECRET_KEY", "dev-secret-change") or "dev-secret-change",
        )
        self.workflow = WorkflowSettings(transitions=_parse_transitions(getenv("CLAIM_STATUS_TRANSITIONS")))
        self.intake = IntakeSettings(
            subject_marker=getenv("INTAKE_SUBJECT_MARKER", "[Réclamation]"),
            default_department=getenv("INTAKE_DEFAULT_DEPARTMENT", "Customer Service"),
            attachment_category=getenv("INTAKE_ATTACHMENT_CATEGORY", "Email Attachment"),
        )
        self.env = getenv("ENV", "development").lower()
        self.log_level = getenv("LOG_LEVEL", "INFO").upper()

    @property
    def log_to_file(self) -> bool:
        return _as_bool(getenv("LOG_TO_FILE"), default=self.env == "development")


def _psycopg_dsn(url: str | None) -> str | None:
    # psycopg no entiende el prefijo de dialecto de SQLAlchemy
    if not url:
        return None
    return url.replace("postgresql+psycopg://", "postgresql://", 1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
