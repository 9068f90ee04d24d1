"""Issue signed queries against a running gateway, one-off or as a benchmark."""
import argparse
import json
import os
import sys
import time

import requests
from jose import jwt

from gatekeeper.tokens import ALGORITHM

DEFAULT_URL = "http://localhost:3030/query"


def sign_query(sql, params=(), method="execute", secret=None, expires_in=60, **extra):
    now = int(time.time())
    claims = {
        "sql": sql,
        "params": list(params),
        "method": method,
        "iat": now,
        "exp": now + expires_in,
    }
    claims.update(extra)
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def send(url, token, timeout=20):
    r = requests.post(url, data=token.encode("utf-8"), headers={"Content-Type": "text/plain"}, timeout=timeout)
    if r.status_code >= 400:
        return r.status_code, r.text
    return r.status_code, r.json()


def bench(url, secret, sql, n, params=(), method="all", sleep_sec=0.005):
    lat = []
    errors = 0
    for _ in range(n):
        token = sign_query(sql, params, method, secret)
        t0 = time.time()
        status, _ = send(url, token)
        dt_ms = (time.time() - t0) * 1000.0
        if status >= 400:
            errors += 1
        else:
            lat.append(dt_ms)
        if sleep_sec:
            time.sleep(sleep_sec)
    lat.sort()
    latency = {"count": len(lat), "avg_ms": None, "p50_ms": None, "p95_ms": None, "max_ms": None}
    if lat:
        latency.update(
            avg_ms=sum(lat) / len(lat),
            p50_ms=lat[int(0.50 * (len(lat) - 1))],
            p95_ms=lat[int(0.95 * (len(lat) - 1))],
            max_ms=lat[-1],
        )
    return {"sql": sql, "latency": latency, "errors": errors}


def main(argv=None):
    parser = argparse.ArgumentParser(prog="gatekeeper-client")
    parser.add_argument("--url", default=os.getenv("GATEKEEPER_URL", DEFAULT_URL))
    parser.add_argument("--secret", default=os.getenv("APP_SECRET"))
    sub = parser.add_subparsers(dest="command", required=True)

    q = sub.add_parser("query", help="send one statement")
    q.add_argument("sql")
    q.add_argument("params", nargs="*", help="JSON-encoded positional parameters")
    q.add_argument("--method", choices=["all", "execute"], default="execute")

    b = sub.add_parser("bench", help="measure round-trip latency")
    b.add_argument("sql")
    b.add_argument("-n", type=int, default=1000)

    args = parser.parse_args(argv)
    if not args.secret:
        parser.error("--secret or APP_SECRET is required")

    if args.command == "query":
        params = [json.loads(p) for p in args.params]
        status, body = send(args.url, sign_query(args.sql, params, args.method, args.secret))
        print(status)
        print(json.dumps(body, indent=2) if status < 400 else body)
        return 0 if status < 400 else 1

    print(bench(args.url, args.secret, args.sql, args.n))
    return 0


if __name__ == "__main__":
    sys.exit(main())
