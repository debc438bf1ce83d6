"""Example services showing how scope frames nest."""

from __future__ import annotations

import asyncio

from scopelog.instrumentation import scope
from scopelog.logger import ContextLogger, get_logger
from scopelog.models.schemas import ScopeOverride


@scope(data={"customServiceCLogData": "Hello, world!"})
class ServiceC:
    def __init__(self, logger: ContextLogger | None = None) -> None:
        self.logger = logger or get_logger(__name__)

    def run(self) -> None:
        self.logger.info("Running", {"customLogMessageData": "How are you?"})


@scope(label="CustomServiceBLabel")
class ServiceB:
    def __init__(self, service_c: ServiceC, logger: ContextLogger | None = None) -> None:
        self.service_c = service_c
        self.logger = logger or get_logger(__name__)

    def run(self) -> None:
        self.logger.info("Calling C")
        self.service_c.run()


@scope
class ServiceA:
    def __init__(self, service_b: ServiceB, logger: ContextLogger | None = None) -> None:
        self.service_b = service_b
        self.logger = logger or get_logger(__name__)

    def run(self) -> None:
        self.logger.info("Starting")
        self.service_b.run()
        self.logger.info("Done")


@scope(data={"component": "worker"})
class Worker:
    """Label comes from the constructor, so each instance logs under its own name."""

    def __init__(self, name: str, logger: ContextLogger | None = None) -> None:
        self.log_context = ScopeOverride(label=f"Worker[{name}]", data={"worker": name})
        self.logger = logger or get_logger(__name__)

    async def process(self, item: int) -> int:
        self.logger.info("Processing", item=item)
        await asyncio.sleep(0)
        result = await self.square(item)
        self.logger.info("Processed", item=item, result=result)
        return result

    async def square(self, item: int) -> int:
        await asyncio.sleep(0)
        return item * item


@scope(label="Dispatcher")
class Dispatcher:
    def __init__(self, workers: list[Worker], logger: ContextLogger | None = None) -> None:
        self.workers = workers
        self.logger = logger or get_logger(__name__)

    async def dispatch(self, items: list[int]) -> list[int]:
        self.logger.info("Dispatching", count=len(items))
        jobs = [self.workers[i % len(self.workers)].process(item) for i, item in enumerate(items)]
        results = await asyncio.gather(*jobs)
        self.logger.info("Dispatched", results=list(results))
        return list(results)


def build_chain(logger: ContextLogger | None = None) -> ServiceA:
    return ServiceA(ServiceB(ServiceC(logger), logger), logger)


def build_dispatcher(names: list[str], logger: ContextLogger | None = None) -> Dispatcher:
    return Dispatcher([Worker(name, logger) for name in names], logger)
