from app.domain.entities.property import Property


class PropertyRepo:
    async def get(self, property_id: str) -> Property | None:
        raise NotImplementedError

    async def lock(self, property_id: str) -> bool:
        """Bloquea la fila de la propiedad hasta el fin de la transacción."""
        raise NotImplementedError

    async def add(self, prop: Property) -> Property:
        raise NotImplementedError
