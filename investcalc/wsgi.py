#setup: python -m venv .venv
#setup: source .venv/bin/activate   # (windows: .venv\Scripts\activate)
#setup: pip install -U pip -e .
#setup: flask --app investcalc.wsgi run --port 5000 --debug

import logging

from investcalc.app import create_app

app = create_app()

logging.basicConfig(
    level=app.config["LOG_LEVEL"],
    format="%(asctime)s - [%(levelname)s] - %(name)s - %(message)s",
)


if __name__ == "__main__":
    app.run(port=5000, debug=True)
