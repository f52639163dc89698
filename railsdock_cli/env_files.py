from __future__ import annotations

from pathlib import Path

from dotenv import dotenv_values, set_key

SECRET_KEY_BASE = "SECRET_KEY_BASE"
SECRET_KEY_PLACEHOLDER = "change_me"


def read_env_file(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    return {k: str(v or "") for k, v in dotenv_values(path).items()}


def secret_key_configured(rails_env: Path) -> bool:
    val = read_env_file(rails_env).get(SECRET_KEY_BASE, "").strip()
    return bool(val) and val != SECRET_KEY_PLACEHOLDER


def write_secret_key_base(rails_env: Path, secret: str) -> None:
    rails_env.parent.mkdir(parents=True, exist_ok=True)
    set_key(str(rails_env), SECRET_KEY_BASE, secret, quote_mode="never")


def postgres_defaults(env_dir: Path) -> tuple[str | None, str | None]:
    """POSTGRES_USER and POSTGRES_DB from env/postgres.env, when present."""
    vals = read_env_file(env_dir / "postgres.env")
    user = vals.get("POSTGRES_USER", "").strip() or None
    db = vals.get("POSTGRES_DB", "").strip() or None
    return user, db
