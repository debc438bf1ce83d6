from __future__ import annotations

from fastapi import FastAPI
from pydantic import BaseModel, Field

from scopelog.demo.services import build_chain, build_dispatcher
from scopelog.observability.middleware import ScopeContextMiddleware


class DispatchRequest(BaseModel):
    items: list[int] = Field(min_length=1)
    workers: list[str] = Field(default_factory=lambda: ["alpha", "beta"], min_length=1)


class DispatchResponse(BaseModel):
    results: list[int]


def create_app() -> FastAPI:
    app = FastAPI(title="scopelog demo", version="0.1.0")
    app.add_middleware(ScopeContextMiddleware)

    @app.post("/chain")
    async def run_chain() -> dict[str, str]:
        build_chain().run()
        return {"status": "ok"}

    @app.post("/dispatch", response_model=DispatchResponse)
    async def dispatch(body: DispatchRequest) -> DispatchResponse:
        results = await build_dispatcher(body.workers).dispatch(body.items)
        return DispatchResponse(results=results)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
