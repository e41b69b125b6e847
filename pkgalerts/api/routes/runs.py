"""POST /runs -- run the alert chain now, outside its schedule."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from pkgalerts.api.deps import get_alert_chain
from pkgalerts.core.errors import ChainBusyError
from pkgalerts.notification.dispatcher import DispatchReport
from pkgalerts.pipeline.chain import TaskChain

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["runs"])


def _step_result(result):
    if isinstance(result, DispatchReport):
        return {
            "status": result.status.value,
            "packages": result.packages,
            "delivered": result.delivered,
            "failed": result.failed,
        }
    return result


@router.post("", summary="Run the alert chain once")
def run_chain(chain: TaskChain = Depends(get_alert_chain)):
    try:
        run = chain.run_once()
    except ChainBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    logger.info("Manual run finished: succeeded=%s", run.succeeded)
    return {
        "started_at": run.started_at.isoformat(),
        "succeeded": run.succeeded,
        "steps": [
            {
                "task": step.task,
                "outcome": step.outcome.value,
                "result": _step_result(step.result),
                "error": step.error,
            }
            for step in run.steps
        ],
    }
