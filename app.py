import os, json, logging, time, uuid

from flask import has_request_context
from flask import Flask, request, jsonify, g
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, BadRequest

# ---- SQLAlchemy Core (no ORM) ----
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from db import build_engine


# ----------------------------
# Pull local env
# ----------------------------

if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv(override=False)  # NEVER override the real process env


def _int_env(name, default):
    raw = os.getenv(name)
    return int(raw) if raw else default


# ----------------------------
# Config
# ----------------------------
class Config:
    ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = ENV == "development"
    TESTING = False

    # CORS (the dashboard may be served from elsewhere)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Database: DATABASE_URL, or the game server's DB_* variables
    DATABASE_URL = os.getenv("DATABASE_URL")
    DB_HOST = os.getenv("DB_HOST")
    DB_PORT = _int_env("DB_PORT", None)
    DB_USER = os.getenv("DB_USER")
    DB_PASS = os.getenv("DB_PASS")
    DB_NAME = os.getenv("DB_NAME")

    # DB timeouts. Enforced at the DB level via connection options.
    DB_STATEMENT_TIMEOUT_MS = _int_env("DB_STATEMENT_TIMEOUT_MS", 8000)  # 8s
    DB_CONNECT_TIMEOUT_S = _int_env("DB_CONNECT_TIMEOUT_S", 5)
    DB_READ_TIMEOUT_S = _int_env("DB_READ_TIMEOUT_S", 10)
    DB_WRITE_TIMEOUT_S = _int_env("DB_WRITE_TIMEOUT_S", 10)

    # SQLAlchemy pool settings: fixed capacity, excess requests queue
    DB_POOL_SIZE = _int_env("DB_POOL_SIZE", 10)
    DB_MAX_OVERFLOW = _int_env("DB_MAX_OVERFLOW", 0)
    DB_POOL_TIMEOUT_S = _int_env("DB_POOL_TIMEOUT_S", 30)
    DB_POOL_RECYCLE_S = _int_env("DB_POOL_RECYCLE_S", 300)

    # Request / server settings
    PORT = _int_env("PORT", 4000)
    REQUEST_MAX_BODY_BYTES = _int_env("REQUEST_MAX_BODY_BYTES", 1048576)  # 1 MB
    PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")

    # Shared secret for /api/ingest; unset means ingestion is open
    LOGGER_KEY = os.getenv("LOGGER_KEY")


# ----------------------------
# Logging (JSON)
# ----------------------------
class JsonFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pid": os.getpid(),
        }

        # Only touch request/g if we actually have a request context
        if has_request_context():
            payload["path"] = request.path
            payload["method"] = request.method
            rid = getattr(g, "request_id", None)
            if rid:
                payload["request_id"] = rid

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging():
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    formatter = JsonFormatter()
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        h = logging.StreamHandler()
        h.setFormatter(formatter)
        root.addHandler(h)
    else:
        for h in root.handlers:
            if isinstance(h, logging.StreamHandler):
                h.setFormatter(formatter)
    logging.getLogger("app").info(
        "App boot: PID=%s, PORT=%s, DATABASE_URL set=%s, LOGGER_KEY set=%s",
        os.getpid(), os.getenv("PORT"),
        bool(os.getenv("DATABASE_URL") or os.getenv("DB_HOST")),
        bool(os.getenv("LOGGER_KEY")),
    )


# ----------------------------
# App Factory
# ----------------------------
def create_app(config_object=Config):
    setup_logging()
    log = logging.getLogger("app")

    app = Flask(
        __name__,
        static_folder=config_object.PUBLIC_DIR,
        static_url_path="",
    )
    app.config.from_object(config_object)
    log.info("stage: config_loaded")

    # Register Blueprints
    from players import players_bp
    from jobs import jobs_bp
    from event_logs import event_logs_bp
    app.register_blueprint(players_bp, url_prefix="/api")
    app.register_blueprint(jobs_bp, url_prefix="/api")
    app.register_blueprint(event_logs_bp)
    log.info("stage: blueprints_ok")

    # CORS
    CORS(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}})

    # Request ID middleware
    @app.before_request
    def attach_request_id():
        g.request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        # lightweight body size guard
        cl = request.content_length
        if cl and cl > app.config["REQUEST_MAX_BODY_BYTES"]:
            raise BadRequest("Request body too large")

    # Database engine (SQLAlchemy Core), visible to blueprints via db.get_engine()
    engine = build_engine(app.config)
    if engine is None:
        log.warning("DATABASE_URL not set. /readyz will fail.")
    else:
        from services.event_log import ensure_table
        try:
            ensure_table(engine)
        except SQLAlchemyError:
            log.exception("event_logs table not ready at boot")
    app.engine = engine
    app.extensions["sqlalchemy_engine"] = engine
    log.info("stage: engine_ok")

    # -------- Error Handlers --------
    @app.errorhandler(HTTPException)
    def handle_http_ex(e: HTTPException):
        return jsonify(error=e.name), e.code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_ex(e):
        logging.getLogger("app").exception("Database error")
        return jsonify(error="Database error"), 500

    @app.errorhandler(Exception)
    def handle_generic_ex(e):
        logging.getLogger("app").exception("Unhandled error")
        return jsonify(error="Something went wrong"), 500

    # -------- Health / Readiness --------
    @app.get("/healthz")
    def healthz():
        return jsonify(status="ok", time=time.time())

    @app.get("/readyz")
    def readyz():
        # quick DB ping
        if app.engine is None:
            return jsonify(status="degraded"), 503
        try:
            with app.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return jsonify(status="ready")
        except SQLAlchemyError:
            log.exception("readyz: db ping failed")
            return jsonify(status="degraded"), 503

    log.info("stage: routes_ok")
    return app


# ----------------------------
# Entrypoint
# ----------------------------
if __name__ == "__main__":
    app = create_app()
    # For local dev only; use a WSGI server (threaded workers) in production
    app.run(host="0.0.0.0", port=app.config["PORT"], threaded=True)
