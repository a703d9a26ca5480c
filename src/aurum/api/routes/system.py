"""System status, config and manual job triggers."""

from fastapi import APIRouter, HTTPException

from aurum.core.dependencies import AgentStateDep, SettingsDep

router = APIRouter()


@router.get("/status")
async def system_status(state: AgentStateDep) -> dict[str, object]:
    jobs = state.scheduler.get_jobs() if state.scheduler else []
    return {
        "db_enabled": state.db_enabled,
        "providers": state.registry.names(),
        "jobs": [job.id for job in jobs],
    }


@router.get("/config")
async def system_config(settings: SettingsDep) -> dict[str, object]:
    return {
        "env": settings.env,
        "default_product": settings.default_product,
        "consensus_providers": settings.consensus_providers,
        "consensus_min_providers": settings.consensus_min_providers,
        "alert_min_strength": settings.alert_min_strength,
        "telegram_enabled": bool(settings.telegram_bot_token and settings.telegram_chat_id),
    }


@router.post("/trigger/{job}")
async def trigger_job(job: str, state: AgentStateDep) -> dict[str, str]:
    """Run a periodic job immediately."""
    fn = state.trigger_fns.get(job)
    if fn is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown job '{job}' (available: {', '.join(state.trigger_fns)})",
        )
    await fn()
    return {"status": "completed", "job": job}
