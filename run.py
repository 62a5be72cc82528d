import argparse
import logging

from shelfmark import create_app


def main() -> None:
    parser = argparse.ArgumentParser(prog="shelfmark", description="Run the Shelfmark API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8083)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    app = create_app()
    app.logger.info("Shelfmark listening on http://%s:%s", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
