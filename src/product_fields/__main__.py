from __future__ import annotations

import argparse

from .app import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the product special fields preview service")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db", default=None, help="snapshot database path (defaults to PRODUCT_FIELDS_DB_PATH)")
    args = parser.parse_args()

    app = create_app(args.db)
    # one editor session per process, mutated by one request at a time
    app.run(host=args.host, port=args.port, debug=False, threaded=False)


if __name__ == "__main__":
    main()
