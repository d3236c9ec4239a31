"""Worker que reclama holds y reservas vencidas en segundo plano."""

import asyncio
import logging
from typing import Awaitable, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)

SweepFn = Callable[[], Awaitable[dict]]


class ExpirySweepWorker:
    """
    Worker de barrido periódico.

    La expiración perezosa ya trata como vencido todo hold o reserva fuera de
    plazo; este worker libera activamente el inventario de sesiones
    abandonadas para que el calendario refleje la disponibilidad real.

    Características:
    - Polling configurable
    - Un ciclo fallido no detiene el worker
    - Graceful shutdown
    """

    def __init__(
        self,
        sweep: SweepFn,
        worker_id: str | None = None,
        poll_interval_seconds: float = 60.0,
    ) -> None:
        """
        Inicializa el worker.

        Args:
            sweep: Función async que ejecuta un ciclo de barrido con sesión propia.
            worker_id: Identificador único del worker (auto-generado si no se provee).
            poll_interval_seconds: Intervalo entre ciclos en segundos.
        """
        self._sweep = sweep
        self._worker_id = worker_id or f"sweeper-{uuid4().hex[:8]}"
        self._poll_interval = poll_interval_seconds
        self._running = False
        self._stop_event = asyncio.Event()
        self._cycles = 0

    @property
    def worker_id(self) -> str:
        return self._worker_id

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        return self._cycles

    async def start(self) -> None:
        """Ejecuta ciclos hasta que se llame a `stop`."""
        self._running = True
        self._stop_event.clear()
        logger.info(f"ExpirySweepWorker {self._worker_id} iniciado")

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error en ciclo del sweeper: {e}")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                continue

    async def stop(self) -> None:
        """Detiene el worker de forma graceful."""
        self._running = False
        self._stop_event.set()
        logger.info(f"ExpirySweepWorker {self._worker_id} detenido")

    async def run_once(self) -> dict:
        """
        Ejecuta un único ciclo de barrido.

        Returns:
            Conteo de holds y reservas expirados en el ciclo.
        """
        result = await self._sweep()
        self._cycles += 1
        if any(result.values()):
            logger.info(
                "Sweep cycle reclaimed inventory",
                extra={"worker_id": self._worker_id, **result},
            )
        return result
