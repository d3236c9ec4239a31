"""Interface UUIDGenerator - Puerto para generación de identificadores únicos."""

import uuid
from abc import ABC, abstractmethod


class UUIDGenerator(ABC):
    """
    Puerto para generación de identificadores únicos.

    Permite inyectar implementaciones fake para testing determinista.
    """

    @abstractmethod
    def generate_uuid(self) -> str:
        """
        Genera un UUID v4 único.

        Returns:
            String con UUID en formato estándar (xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx).
        """
        raise NotImplementedError


class RealUUIDGenerator(UUIDGenerator):
    """Implementación real que genera UUIDs aleatorios."""

    def generate_uuid(self) -> str:
        return str(uuid.uuid4())


class FakeUUIDGenerator(UUIDGenerator):
    """
    Implementación fake para testing.

    Genera valores predecibles basados en contador.
    """

    def __init__(self) -> None:
        self._uuid_counter = 0

    def generate_uuid(self) -> str:
        self._uuid_counter += 1
        hex_value = f"{self._uuid_counter:032x}"
        return f"{hex_value[:8]}-{hex_value[8:12]}-{hex_value[12:16]}-{hex_value[16:20]}-{hex_value[20:]}"

    def reset(self) -> None:
        self._uuid_counter = 0
