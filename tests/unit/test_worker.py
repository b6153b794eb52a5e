import pytest

from app.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


@pytest.mark.asyncio
async def test_run_worker_reads_job_from_env(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "click_cleanup_once", dummy_job)
    monkeypatch.setattr(worker.sys, "argv", ["worker"])
    monkeypatch.setenv("WORKER_JOB", " Click_Cleanup_Once ")

    await worker.run_worker()

    assert called["ok"] is True


def test_cleanup_jobs_are_registered():
    assert {"click_cleanup", "click_cleanup_once"} <= set(worker.JOB_REGISTRY)
