from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Optional

import uvicorn
from fastapi import FastAPI

from panelcore.core.config import ConfigLoader, ConfigPaths, PanelConfig
from panelcore.core.errors import ConfigError, StorageInitError
from panelcore.core.events import EventLogger
from panelcore.core.locks.manager import LockManager
from panelcore.core.logger import setup_logging
from panelcore.core.security_events import SecurityAuditLogger
from panelcore.core.sessions.manager import SessionManager
from panelcore.core.sweeper import Sweeper
from panelcore.core.users import UserStore
from panelcore.web.api import create_app


@dataclass
class PanelRuntime:
    app: FastAPI
    session_manager: SessionManager
    lock_manager: LockManager
    user_store: UserStore
    sweeper: Sweeper


def build_runtime(cfg: PanelConfig, logger) -> PanelRuntime:  # noqa: ANN001
    """Wire stores, managers and the web app. Raises StorageInitError when storage is unusable."""
    event_logger = EventLogger(cfg.logging.events_path)
    audit_logger = SecurityAuditLogger(cfg.logging.security_log_path)

    user_store = UserStore(
        cfg.users.users_dir,
        default_owner_username=cfg.users.default_owner_username,
        default_owner_password=cfg.users.default_owner_password,
        logger=logger,
    )
    if not user_store.begin():
        logger.warning("No usable user accounts; logins will fail until one is added.")

    lock_manager = LockManager(cfg=cfg.locks, event_logger=event_logger, logger=logger)
    if not lock_manager.begin(discard_existing=cfg.locks.clear_on_start):
        logger.warning("Lock store could not be prepared; lock operations will fail.")

    session_manager = SessionManager(
        lock_manager=lock_manager,
        cfg=cfg.sessions,
        event_logger=event_logger,
        audit_logger=audit_logger,
        logger=logger,
    )
    sweeper = Sweeper(session_manager=session_manager, lock_manager=lock_manager, cfg=cfg.sweep, logger=logger)
    app = create_app(
        session_manager=session_manager,
        lock_manager=lock_manager,
        user_store=user_store,
        session_cfg=cfg.sessions,
        web_cfg=cfg.web,
        event_logger=event_logger,
        audit_logger=audit_logger,
        logger=logger,
    )
    return PanelRuntime(app=app, session_manager=session_manager, lock_manager=lock_manager, user_store=user_store, sweeper=sweeper)


def main(argv: Optional[list] = None) -> None:
    ap = argparse.ArgumentParser(description="Device panel: sessions, accounts and resource locks")
    ap.add_argument("--config-dir", default="config", help="Directory holding panel.json.")
    ap.add_argument("--host", default=None, help="Override web.bind_host.")
    ap.add_argument("--port", type=int, default=None, help="Override web.port.")
    args = ap.parse_args(argv)

    try:
        cfg = ConfigLoader(ConfigPaths(args.config_dir)).ensure_default()
    except ConfigError as e:
        print(f"Config error: {e.user_message} {e.context}", file=sys.stderr)
        raise SystemExit(2) from e

    logger = setup_logging(cfg.logging.log_dir)
    try:
        runtime = build_runtime(cfg, logger)
    except StorageInitError as e:
        logger.critical(f"Storage initialization failed: {e.context}")
        raise SystemExit(1) from e

    host = args.host or cfg.web.bind_host
    port = args.port or cfg.web.port
    runtime.sweeper.start()
    logger.info(f"Panel listening on {host}:{port}")
    try:
        uvicorn.run(runtime.app, host=host, port=port, log_level="info")
    finally:
        runtime.sweeper.stop()


if __name__ == "__main__":
    main()
