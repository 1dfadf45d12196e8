"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request

from emotion_nudge.context import NudgeContext


def get_context(request: Request) -> NudgeContext:
    ctx: NudgeContext | None = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(503, "Engine not ready.")
    return ctx
