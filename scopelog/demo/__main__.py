from __future__ import annotations

import argparse
import asyncio

from scopelog.demo.services import build_chain, build_dispatcher
from scopelog.observability.logging import configure_logging


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="scopelog demo scenarios")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("chain", help="Run ServiceA -> ServiceB -> ServiceC")

    dispatch = sub.add_parser("dispatch", help="Fan work out to concurrent workers")
    dispatch.add_argument("items", nargs="*", type=int, default=[1, 2, 3, 4], help="Items to square")
    dispatch.add_argument("--worker", action="append", dest="workers", help="Worker name (repeatable)")

    serve = sub.add_parser("serve", help="Serve the demo FastAPI app with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    if args.command == "chain":
        build_chain().run()
    elif args.command == "dispatch":
        asyncio.run(build_dispatcher(args.workers or ["alpha", "beta"]).dispatch(args.items))
    elif args.command == "serve":
        import uvicorn

        configure_logging()
        uvicorn.run("scopelog.demo.app:app", host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
