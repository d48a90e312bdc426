# telemetry.py
import os, sys, logging, warnings

def go_quiet(default_level="WARNING"):
    """
    Silence 3rd-party log spam while keeping the service's own loggers:
      - everything under the "legacybrd" logger
      - real warnings/errors from libraries
    Call as the FIRST thing in your app, before importing big libs.
    """
    os.environ.setdefault("PYTHONUTF8", "1")
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    os.environ.setdefault("TQDM_DISABLE", "1")
    os.environ.setdefault("OTEL_SDK_DISABLED", "true")

    # Root level is tunable via LB_LOG_LEVEL
    lvl_name = os.getenv("LB_LOG_LEVEL", default_level).upper()
    lvl = getattr(logging, lvl_name, logging.WARNING)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s - %(levelname)s %(name)s: %(message)s",
        force=True,  # override prior handlers from libs
    )

    noisy = [
        # networking / http
        "urllib3", "urllib3.connectionpool", "requests",
        # PDF stack
        "pdfminer", "pdfminer.six", "pdfplumber",
        # database
        "sqlalchemy.engine", "sqlalchemy.pool",
        # web server access log
        "uvicorn.access",
    ]
    for name in noisy:
        lg = logging.getLogger(name)
        lg.setLevel(logging.ERROR)

    logging.captureWarnings(True)
    warnings.simplefilter("ignore", category=DeprecationWarning)

    # Keep the service logger at INFO regardless of the root level
    app_logger = logging.getLogger("legacybrd")
    app_logger.setLevel(logging.INFO)
    app_logger.propagate = False
    if not app_logger.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setLevel(logging.INFO)
        h.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s %(name)s: %(message)s"))
        app_logger.addHandler(h)
