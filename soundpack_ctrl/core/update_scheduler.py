"""Utilities for scheduling automatic pack updates."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Optional

from croniter import croniter
from croniter.croniter import CroniterBadCronError

from soundpack_ctrl.common.config import SoundPackSettings
from soundpack_ctrl.common.logging_config import configure_logging, get_logger

from .installer import PackInstaller
from .manifest import fetch_merged_manifest, outdated_packs

MAX_SLEEP_INTERVAL_SECONDS = 30
POST_UPDATE_DELAY_SECONDS = 10


class CronSchedule:
    """Cron schedule helper backed by :mod:`croniter`."""

    def __init__(self, expression: str) -> None:
        self._expression = expression
        self._validate_expression()

    def _validate_expression(self) -> None:
        """Eagerly validate cron syntax so we fail fast on start-up."""

        try:
            croniter(self._expression, datetime.now())
        except CroniterBadCronError as exc:
            raise ValueError(str(exc)) from exc

    def next_run(self, reference: datetime) -> datetime:
        """Return the next scheduled time strictly after ``reference``."""

        try:
            iterator = croniter(
                self._expression,
                reference,
                ret_type=datetime,
            )
            return iterator.get_next(datetime)
        except CroniterBadCronError as exc:  # pragma: no cover
            raise ValueError(str(exc)) from exc


def run_update_cycle(installer: PackInstaller, settings: SoundPackSettings) -> int:
    """Reinstall every installed pack whose registry version changed.

    Returns:
        Number of packs updated successfully
    """
    logger = get_logger(__name__)
    manifest = fetch_merged_manifest(settings.registry_urls(), timeout=settings.download_timeout())
    candidates = outdated_packs(installer.database, manifest)
    if not candidates:
        logger.info("All installed packs are up to date")
        return 0

    updated = 0
    for info in candidates:
        logger.info("Updating pack %s to version %s", info.id, info.version)
        if installer.install_pack_info(info):
            updated += 1
        else:
            logger.warning("Update of pack %s failed; keeping the installed version", info.id)
    return updated


def run_update_scheduler(settings: Optional[SoundPackSettings] = None, max_cycles: Optional[int] = None) -> None:
    """Entry point that waits for cron events and updates outdated packs."""

    configure_logging()
    logger = get_logger(__name__)
    settings = settings or SoundPackSettings()

    cron_expression = settings.update_cron()
    if not cron_expression:
        logger.info("Update scheduler disabled (no cron expression provided)")
        return

    try:
        schedule = CronSchedule(cron_expression)
    except ValueError as exc:
        logger.error("Invalid SOUNDPACK_UPDATE_CRON expression '%s': %s", cron_expression, exc)
        return

    installer = PackInstaller.from_settings(settings)
    logger.info("Update scheduler active (cron='%s')", cron_expression)

    cycles = 0
    while max_cycles is None or cycles < max_cycles:
        now = datetime.now()
        try:
            next_run = schedule.next_run(now)
        except ValueError as exc:
            logger.error("Failed to compute next update time: %s", exc)
            return

        logger.info("Next scheduled update at %s", next_run.strftime("%Y-%m-%d %H:%M"))
        while True:
            delta = (next_run - datetime.now()).total_seconds()
            if delta <= 0:
                break
            time.sleep(min(delta, MAX_SLEEP_INTERVAL_SECONDS))

        try:
            run_update_cycle(installer, settings)
        except Exception as exc:
            logger.error("Scheduled update failed: %s", exc)
        cycles += 1

        # Small delay before computing next window to avoid tight loops
        time.sleep(POST_UPDATE_DELAY_SECONDS)


__all__ = ["CronSchedule", "run_update_cycle", "run_update_scheduler"]
