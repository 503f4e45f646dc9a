from __future__ import annotations

from datetime import datetime, timedelta

import pytest

import soundpack_ctrl.core.update_scheduler as scheduler
from soundpack_ctrl.common.config import SoundPackSettings
from soundpack_ctrl.core.database import PackRecord
from soundpack_ctrl.core.installer import PackInstaller
from soundpack_ctrl.core.manifest import Manifest, PackInfo
from soundpack_ctrl.core.update_scheduler import CronSchedule, run_update_cycle, run_update_scheduler


def make_dt(text: str) -> datetime:
    return datetime.strptime(text, "%Y-%m-%d %H:%M")


def test_cron_schedule_basic_minute_progression():
    schedule = CronSchedule("0 4 * * *")
    assert schedule.next_run(make_dt("2024-03-10 03:59")) == make_dt("2024-03-10 04:00")
    # After the run it should point to the next day
    assert schedule.next_run(make_dt("2024-03-10 04:00")) == make_dt("2024-03-11 04:00")


def test_cron_schedule_range_and_step():
    schedule = CronSchedule("*/15 8-9 * * mon-fri")
    assert schedule.next_run(make_dt("2024-06-03 08:00")) == make_dt("2024-06-03 08:15")
    assert schedule.next_run(make_dt("2024-06-03 08:59")) == make_dt("2024-06-03 09:00")


def test_cron_schedule_rejects_garbage():
    with pytest.raises(ValueError):
        CronSchedule("invalid")


def test_run_update_scheduler_no_cron_exits_quickly(caplog, sounds_dir):
    settings = SoundPackSettings({"SOUNDPACK_SOUNDS_DIR": str(sounds_dir)})
    with caplog.at_level("INFO"):
        run_update_scheduler(settings)
    assert "Update scheduler disabled" in caplog.text


def test_run_update_scheduler_invalid_cron(caplog, sounds_dir):
    settings = SoundPackSettings({"SOUNDPACK_SOUNDS_DIR": str(sounds_dir), "SOUNDPACK_UPDATE_CRON": "invalid"})
    with caplog.at_level("INFO"):
        run_update_scheduler(settings)
    assert "Invalid SOUNDPACK_UPDATE_CRON" in "\n".join(caplog.messages)


def test_run_update_scheduler_waits_for_cron_then_updates(monkeypatch, sounds_dir):
    base_time = datetime(2024, 1, 1, 12, 0, 30)

    class FakeDateTime(datetime):
        current = base_time

        @classmethod
        def now(cls):
            return cls.current

        @classmethod
        def advance(cls, seconds: float) -> None:
            cls.current = cls.current + timedelta(seconds=seconds)

    def fast_sleep(seconds: float) -> None:
        FakeDateTime.advance(seconds)

    cycles = []

    def fake_cycle(installer, settings):
        cycles.append(FakeDateTime.current)
        return 0

    monkeypatch.setattr(scheduler, "datetime", FakeDateTime)
    monkeypatch.setattr(scheduler.time, "sleep", fast_sleep)
    monkeypatch.setattr(scheduler, "run_update_cycle", fake_cycle)

    settings = SoundPackSettings({"SOUNDPACK_SOUNDS_DIR": str(sounds_dir), "SOUNDPACK_UPDATE_CRON": "* * * * *"})
    run_update_scheduler(settings, max_cycles=2)

    assert len(cycles) == 2
    assert cycles[0] >= datetime(2024, 1, 1, 12, 1)
    assert cycles[1] >= datetime(2024, 1, 1, 12, 2)


def test_run_update_cycle_reinstalls_outdated_packs(monkeypatch, sounds_dir):
    installer = PackInstaller(sounds_dir)
    installer.database.record_install(PackRecord("stale", version="1"))
    installer.database.record_install(PackRecord("fresh", version="2"))
    manifest = Manifest(packs=[
        PackInfo(id="stale", name="Stale", version="2", download_url="https://x.invalid/stale.zip"),
        PackInfo(id="fresh", name="Fresh", version="2", download_url="https://x.invalid/fresh.zip"),
    ])
    installed = []

    monkeypatch.setattr(scheduler, "fetch_merged_manifest", lambda urls, timeout: manifest)
    monkeypatch.setattr(installer, "install_pack_info", lambda info: installed.append(info.id) or True)

    settings = SoundPackSettings({"SOUNDPACK_SOUNDS_DIR": str(sounds_dir)})
    assert run_update_cycle(installer, settings) == 1
    assert installed == ["stale"]
