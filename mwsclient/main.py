import argparse
import logging
import os
from pprint import pprint

from dotenv import load_dotenv

from mwsclient.clients.mws.errors import MWSError
from mwsclient.clients.mws.factory import create_mws_client


def configure_logging() -> logging.Logger:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for noisy_lib in ("httpx", "httpcore", "botocore"):
        logging.getLogger(noisy_lib).setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mwsclient",
        description="Check MWS credentials or request a report.",
    )
    parser.add_argument("--report", metavar="REPORT_TYPE", help="request a report, e.g. _GET_MERCHANT_LISTINGS_DATA_")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)

    logger = configure_logging()

    try:
        client = create_mws_client()
        logger.debug("MWS config loaded: %s", client.config)
    except ValueError as e:
        logger.error("Error loading MWS config: %s", e)
        logger.info("Aborting... Please set the required environment variables and try again.")
        return 1

    try:
        if args.report:
            request_id = client.request_report(args.report)
            print(request_id)
        else:
            pprint(client.list_marketplace_participations())
    except MWSError as e:
        logger.error("MWS request failed: %s", e)
        return 1
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
