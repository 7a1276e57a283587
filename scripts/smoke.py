import json
import time
import urllib.error
import urllib.request
from argparse import ArgumentParser
import sys
from pathlib import Path

from sqlalchemy import text as sa_text


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main() -> None:
    parser = ArgumentParser(description="Smoke check for the ride store and the health endpoint")
    parser.add_argument("--health-url", help="health endpoint URL to check over HTTP")
    parser.add_argument("--health-timeout", type=float, default=3.0, help="timeout per HTTP request")
    parser.add_argument("--health-retries", type=int, default=20, help="attempts for the HTTP health check")
    parser.add_argument("--health-sleep", type=float, default=1.0, help="pause between health check attempts")
    args = parser.parse_args()

    from ridehail.db import close_db, init_db
    from ridehail.services.views import pending_rides
    from ridehail.settings import settings

    database = init_db(settings.DATABASE_URL, timeout=settings.STORE_TIMEOUT_SECONDS)
    db = database.session()
    try:
        db.execute(sa_text("SELECT 1"))
        pending = pending_rides(db)
        print(f"SMOKE_DB_OK pending_rides={len(pending)}")
    finally:
        db.close()
        close_db(database)

    if args.health_url:
        for attempt in range(1, args.health_retries + 1):
            try:
                with urllib.request.urlopen(args.health_url, timeout=args.health_timeout) as response:
                    body = json.loads(response.read().decode("utf-8"))
                    if response.status != 200 or body.get("ok") is not True:
                        raise RuntimeError(f"Unexpected health response: status={response.status} body={body}")
                print(f"SMOKE_HEALTH_OK url={args.health_url} attempts={attempt}")
                break
            except (urllib.error.URLError, TimeoutError, json.JSONDecodeError, RuntimeError) as exc:
                if attempt == args.health_retries:
                    raise RuntimeError(f"Health check failed at {args.health_url} after {attempt} attempts") from exc
                time.sleep(args.health_sleep)


if __name__ == "__main__":
    main()
