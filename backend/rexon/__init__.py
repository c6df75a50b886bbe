import os
import subprocess
import click
from pathlib import Path
from flask import Flask, jsonify, request, g
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from rexon.extensions import db, migrate, cors
from rexon.models import User
from rexon.segments.segment_auth import auth_bp
from rexon.segments.segment_customers import customers_bp
from rexon.segments.segment_agents import agents_bp
from rexon.segments.segment_warehouses import warehouses_bp
from rexon.segments.segment_search import search_bp
from rexon.segments.segment_cities import cities_bp
from rexon.segments.segment_banners import banners_bp
from rexon.segments.segment_superadmin import superadmin_bp
from rexon.integrations.email.factory import email_health
from rexon.integrations.storage.factory import storage_health
from rexon.utils.session import get_session
from rexon.utils.observability import init_sentry, init_otel, install_request_observers, set_sentry_user
from rexon.utils.cache_layer import cache_stats
from rexon.utils.rate_limit import (
    check_limit,
    rate_limit_enabled,
    build_rate_limit_subject,
    limiter_stats,
)

BACKEND_DIR = Path(__file__).resolve().parents[1]

AUTH_PATH_PREFIXES = (
    "/api/auth",
    "/api/customers/register",
    "/api/agents/register",
)


def _resolve_alembic_head() -> str:
    try:
        from alembic.config import Config
        from alembic.script import ScriptDirectory

        migrations_dir = BACKEND_DIR / "migrations"
        cfg = Config(str(migrations_dir / "alembic.ini"))
        cfg.set_main_option("script_location", str(migrations_dir))
        script = ScriptDirectory.from_config(cfg)
        heads = script.get_heads()
        return heads[0] if heads else "unknown"
    except Exception:
        return "unknown"


def _resolve_git_sha() -> str:
    for env_key in ("RENDER_GIT_COMMIT", "GIT_SHA", "SOURCE_VERSION"):
        val = (os.getenv(env_key) or "").strip()
        if val:
            return val
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=str(BACKEND_DIR),
            stderr=subprocess.DEVNULL,
        )
        return out.decode().strip()
    except Exception:
        return "unknown"


def _env_int(name: str, default: int, *, minimum: int = 1, maximum: int = 100000) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        value = int(default)
    else:
        try:
            value = int(raw)
        except ValueError:
            value = int(default)
    return max(minimum, min(maximum, value))


def _is_dev_env(env: str) -> bool:
    return env in ("dev", "development", "local", "test")


def create_app():
    app = Flask(__name__)
    init_sentry(app)

    env = (os.getenv("REXON_ENV", "dev") or "dev").strip().lower()

    # Production safety checks
    if env in ("prod", "production"):
        secret = (os.getenv("SECRET_KEY") or "").strip()
        if not secret or len(secret) < 16:
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")

    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["REXON_ENV"] = env

    instance_dir = BACKEND_DIR / "instance"
    instance_dir.mkdir(parents=True, exist_ok=True)

    database_url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    if not database_url:
        database_url = f"sqlite:///{(instance_dir / 'rexon.db').as_posix()}"
    # Hosted Postgres URLs still use the legacy scheme.
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    engine_options = {
        "pool_pre_ping": True,
        "pool_reset_on_return": "rollback",
        "pool_recycle": _env_int("DB_POOL_RECYCLE_SECONDS", 1800, minimum=60, maximum=86400),
    }
    if not database_url.startswith("sqlite://"):
        engine_options.update(
            {
                "pool_size": _env_int("DB_POOL_SIZE", 10, minimum=1, maximum=200),
                "max_overflow": _env_int("DB_MAX_OVERFLOW", 20, minimum=0, maximum=500),
                "pool_timeout": _env_int("DB_POOL_TIMEOUT_SECONDS", 30, minimum=1, maximum=300),
            }
        )
        app.logger.info(
            "db_pooling_enabled pool_size=%s max_overflow=%s pool_timeout=%s pool_recycle=%s",
            engine_options["pool_size"],
            engine_options["max_overflow"],
            engine_options["pool_timeout"],
            engine_options["pool_recycle"],
        )
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

    # Storage and public URLs
    app.config["PUBLIC_URL"] = (os.getenv("PUBLIC_URL") or "http://localhost:5000").strip().rstrip("/")
    app.config["STORAGE_BACKEND"] = (os.getenv("STORAGE_BACKEND") or "local").strip().lower()
    app.config["UPLOAD_DIR"] = os.path.abspath(os.getenv("UPLOAD_DIR") or str(BACKEND_DIR / "uploads"))
    app.config["S3_BUCKET_NAME"] = (os.getenv("S3_BUCKET_NAME") or "").strip()
    app.config["AWS_REGION"] = (os.getenv("AWS_REGION") or "ap-south-1").strip()

    # CORS configuration
    cors_origins = (os.getenv("CORS_ORIGINS") or "").strip()
    if env in ("prod", "production"):
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not cors_origins else [o.strip() for o in cors_origins.split(",") if o.strip()]
    # Session cookies need credentialed CORS, which a wildcard origin forbids.
    cors.init_app(app, resources={r"/api/*": {"origins": origins}}, supports_credentials=origins != ["*"])

    db.init_app(app)
    migrate.init_app(app, db, directory=str(BACKEND_DIR / "migrations"))
    install_request_observers(app)
    with app.app_context():
        init_otel(app, enabled=(os.getenv("OTEL_ENABLED") or "").strip() == "1")
    if (os.getenv("CELERY_BROKER_URL") or "").strip():
        from rexon.celery_app import create_celery_app

        app.extensions["celery"] = create_celery_app(app)

    @app.errorhandler(HTTPException)
    def _api_http_exception(error: HTTPException):
        if not request.path.startswith("/api/"):
            return error
        payload = {
            "success": False,
            "error": error.name,
            "message": error.description or error.name,
            "status": int(error.code or 500),
        }
        rid = (getattr(g, "request_id", "") or "").strip()
        if rid:
            payload["trace_id"] = rid
        return jsonify(payload), int(error.code or 500)

    @app.errorhandler(Exception)
    def _api_unhandled_exception(error: Exception):
        app.logger.exception("unhandled_exception path=%s", request.path)
        try:
            db.session.rollback()
        except Exception:
            app.logger.warning("db_rollback_failed path=%s", request.path, exc_info=True)
        payload = {
            "success": False,
            "error": "InternalServerError",
            "message": "Internal server error",
            "status": 500,
        }
        rid = (getattr(g, "request_id", "") or "").strip()
        if rid:
            payload["trace_id"] = rid
        return jsonify(payload), 500

    # Register API routes
    app.register_blueprint(auth_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(agents_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(cities_bp)
    app.register_blueprint(banners_bp)
    app.register_blueprint(superadmin_bp)

    @app.get("/api/health")
    def health():
        db_state = "ok"
        db_error = None
        try:
            with db.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            db_state = "fail"
            msg = str(e)
            if msg:
                db_error = (msg[:300] + "...") if len(msg) > 300 else msg
        payload = {
            "success": True,
            "service": "rexon-backend",
            "env": env,
            "db": db_state,
            "git_sha": _resolve_git_sha(),
            "alembic_head": _resolve_alembic_head(),
            "storage": storage_health(),
            "email": email_health(),
            "cache": cache_stats(),
            "rate_limit": limiter_stats(),
        }
        if db_error:
            payload["db_error"] = db_error
        return jsonify(payload)

    @app.get("/")
    def root():
        return jsonify({
            "success": True,
            "service": "rexon-backend",
            "env": env,
        })

    @app.get("/api/version")
    def version():
        return jsonify({
            "success": True,
            "alembic_head": _resolve_alembic_head(),
            "git_sha": _resolve_git_sha(),
        })

    @app.before_request
    def _capture_auth_context():
        g.auth_user_id = None
        g.auth_role = None
        set_sentry_user(None)
        session = get_session()
        if not session:
            return
        try:
            uid = int(session.get("userId"))
        except (TypeError, ValueError):
            return
        g.auth_user_id = uid
        g.auth_role = (session.get("role") or "user").strip().lower()
        set_sentry_user(uid, email=session.get("email"), role=g.auth_role)

    def _rate_limited_response(retry_after_seconds: int):
        retry_after = int(max(1, retry_after_seconds or 1))
        payload = {
            "success": False,
            "error": "Too many requests",
            "code": "RATE_LIMITED",
            "retry_after_seconds": retry_after,
        }
        rid = (getattr(g, "request_id", "") or "").strip()
        if rid:
            payload["trace_id"] = rid
        resp = jsonify(payload)
        resp.status_code = 429
        resp.headers["Retry-After"] = str(retry_after)
        return resp

    @app.before_request
    def _global_rate_limit_guard():
        if bool(app.config.get("TESTING")):
            allow_in_tests = (os.getenv("RATE_LIMIT_IN_TESTS") or "").strip().lower() in ("1", "true", "yes", "on")
            if not allow_in_tests:
                return None
        if not rate_limit_enabled(True):
            return None
        method = (request.method or "GET").strip().upper()
        if method == "OPTIONS":
            return None
        path = (request.path or "").strip()
        if not path.startswith("/api/"):
            return None

        if method != "GET" and any(path.startswith(prefix) for prefix in AUTH_PATH_PREFIXES):
            subject = build_rate_limit_subject(scope="ip", user_id=None, request_obj=request)
            ok_minute, retry_minute = check_limit(f"tier:auth:minute:{subject}", limit=10, window_seconds=60)
            if not ok_minute:
                return _rate_limited_response(retry_minute)
            ok_hour, retry_hour = check_limit(f"tier:auth:hour:{subject}", limit=30, window_seconds=3600)
            if not ok_hour:
                return _rate_limited_response(retry_hour)
            return None

        user_id = getattr(g, "auth_user_id", None)
        scope = "user" if user_id is not None else "ip"
        subject = build_rate_limit_subject(
            scope=scope,
            user_id=int(user_id) if user_id is not None else None,
            request_obj=request,
        )
        if method == "GET":
            limit, tier = 120, "browse"
        else:
            limit, tier = 60, "write"
        ok, retry_after = check_limit(f"tier:{tier}:{method}:{path}:{subject}", limit=limit, window_seconds=60)
        if not ok:
            return _rate_limited_response(retry_after)
        return None

    @app.before_request
    def _reset_db_session():
        try:
            db.session.rollback()
        except Exception:
            app.logger.warning("db_session_reset_failed", exc_info=True)

    @app.teardown_request
    def _cleanup_db_session(exc):
        try:
            if exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()

    @app.cli.command("bootstrap-superadmin")
    @click.option("--first-name", "first_name", default="Super", help="First name for a new account")
    @click.option("--last-name", "last_name", default="Admin", help="Last name for a new account")
    def bootstrap_superadmin(first_name: str, last_name: str):
        allow = (os.getenv("ALLOW_ADMIN_BOOTSTRAP") or "").strip() == "1"
        if not _is_dev_env(env) and not allow:
            raise click.ClickException("Superadmin bootstrap disabled. Set ALLOW_ADMIN_BOOTSTRAP=1 or REXON_ENV=dev.")

        email = (os.getenv("SUPERADMIN_EMAIL") or "").strip().lower()
        password = (os.getenv("SUPERADMIN_PASSWORD") or "").strip()
        if not email or not password:
            raise click.ClickException("SUPERADMIN_EMAIL and SUPERADMIN_PASSWORD must be set.")

        u = User.query.filter_by(email=email).first()
        try:
            if u:
                u.set_password(password)
                u.role = "superadmin"
            else:
                u = User(
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    auth_provider="email",
                    role="superadmin",
                    is_verified=True,
                )
                u.set_password(password)
                db.session.add(u)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            raise click.ClickException(f"Failed to bootstrap superadmin: {type(e).__name__}")
        click.echo(f"superadmin_bootstrap_ok {u.email}")

    return app
