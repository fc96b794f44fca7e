from abc import ABC, abstractmethod

from compositor.log import log


class Runnable(ABC):
    """
    Runnable implements an asynchronous "run until told to stop" loop for one stage of the pipeline. The loop begins
    when `run` is awaited and can be stopped by calling `stop`, either from outside or by the stage itself when it runs
    out of input. Subclasses implement `step`, which is awaited on each loop cycle, and can implement `setup` and/or
    `teardown` if they need to do any pre- or post-loop work.

    `teardown` runs even if `step` raises, so a stage always gets the chance to hand off what it's holding and to
    tell the next stage that no more data is coming.
    """

    def __init__(self):
        self._name = type(self).__name__
        self._running = False

    async def run(self) -> None:
        log(f"{self._name} starting")
        self._running = True
        await self.setup()
        log(f"{self._name} started")

        try:
            while self._running:
                await self.step()
        finally:
            self._running = False
            await self.teardown()
            log(f"{self._name} stopped")

    def stop(self) -> None:
        if self._running:
            log(f"{self._name} stopping")
        self._running = False

    @abstractmethod
    async def step(self) -> None: ...

    async def setup(self) -> None:
        pass

    async def teardown(self) -> None:
        pass
