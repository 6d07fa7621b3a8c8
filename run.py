"""
run.py — Ponto de entrada do PingWatch.

Uso:
    python run.py                      # modo desenvolvimento (padrão)
    FLASK_ENV=production python run.py # modo produção
"""

import atexit
import os

from api import create_app
from api.config import DevelopmentConfig, ProductionConfig
from api.extensions import EXTENSION_KEY

_ENV_MAP = {
    "production": ProductionConfig,
    "prod":       ProductionConfig,
}

env = os.getenv("FLASK_ENV", "development").lower()
config_class = _ENV_MAP.get(env, DevelopmentConfig)

app = create_app(config_class=config_class)

debug_mode = bool(app.config.get("DEBUG", False))
if env in _ENV_MAP:
    debug_mode = False

if __name__ == "__main__":
    controller = app.extensions[EXTENSION_KEY].controller
    if app.config.get("START_MONITOR", True):
        controller.start()
        atexit.register(controller.stop)

    app.run(
        host=os.getenv("FLASK_HOST", "127.0.0.1"),
        port=int(os.getenv("FLASK_PORT", 8000)),
        debug=debug_mode,
        # O reloader criaria um segundo processo com outro agendador
        use_reloader=False,
        threaded=True,
    )
