import logging
import time

from gatekeeper.config import load_settings
from gatekeeper.db import Database
from gatekeeper.gateway import create_app
from gatekeeper.tokens import TokenVerifier

log = logging.getLogger("gatekeeper")


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # the database may still be starting next to us
    time.sleep(settings.startup_delay)
    db = Database.connect(settings.database_url)

    app = create_app(db, TokenVerifier(settings.secret))
    log.info("Server is starting on port %d", settings.port)
    app.run(host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
