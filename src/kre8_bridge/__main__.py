"""
Point d'entrée pour `python -m kre8_bridge`.
"""
import asyncio
import logging
import os
import sys

import uvicorn

from .config.loader import CONFIG_ENV_VAR, get_bridge_settings, load_config


def _serve(args, settings):
    host = args.host or settings.server.host
    port = args.port or settings.server.port
    print(f"🚀 Démarrage du KRE8 Bridge sur {host}:{port}")

    uvicorn.run(
        "kre8_bridge.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


def _smoke(args, settings):
    from .client import default_ws_url, format_report, run_smoke_test

    url = args.url or default_ws_url(args.host or settings.server.host, args.port or settings.server.port)
    print(f"🧪 Smoke test du bridge: {url}")
    try:
        report = asyncio.run(run_smoke_test(url, timeout_s=args.timeout))
    except OSError as e:
        print(f"❌ Connexion impossible: {e}")
        return 1

    print(format_report(report))
    return 0 if report.passed == report.total else 1


def main():
    """Fonction principale."""
    import argparse

    parser = argparse.ArgumentParser(description="KRE8 Bridge")
    parser.add_argument("--config", default=None, help="Chemin de config.toml")
    parser.add_argument("--host", default=None, help="Host (défaut: config, sinon 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (défaut: config, sinon 3001)")
    parser.add_argument("--log-level", default="INFO", help="Niveau de log (défaut: INFO)")

    subparsers = parser.add_subparsers(dest="command")
    serve_parser = subparsers.add_parser("serve", help="Démarre le bridge (défaut)")
    serve_parser.add_argument("--reload", action="store_true", help="Activer le reload auto")
    smoke_parser = subparsers.add_parser("smoke", help="Smoke test d'un bridge en cours d'exécution")
    smoke_parser.add_argument("--url", default=None, help="URL WebSocket (défaut: ws://localhost:<port>/ws)")
    smoke_parser.add_argument("--timeout", type=float, default=5.0, help="Timeout par commande (s)")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config:
        # Propagé aux workers uvicorn (reload)
        os.environ[CONFIG_ENV_VAR] = args.config
        load_config(args.config)
    settings = get_bridge_settings()

    if args.command == "smoke":
        return _smoke(args, settings)
    if not hasattr(args, "reload"):
        args.reload = False
    return _serve(args, settings)


if __name__ == "__main__":
    sys.exit(main())
