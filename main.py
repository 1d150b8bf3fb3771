import logging

import uvicorn

from app import app, get_client
from config import configure_logging, get_settings

logger = logging.getLogger(__name__)


def main():
    """
    Entry point for the dashboard.
    Confirms the NetSuite credentials work, then serves the app.
    """
    settings = get_settings()
    configure_logging(settings)

    print("Initializing NetSuite client...")
    data = get_client().get_metadata_catalog()

    items = data.get("items", [])
    logger.info("Connected to NetSuite account %s (%d record types)", settings.account_id, len(items))
    print(f"Connected successfully! Found {len(items)} record types.")

    uvicorn.run(app, host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
