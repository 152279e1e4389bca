from typing import Optional, Sequence, TypeVar

E = TypeVar('E')


def parse_position(identifier: str) -> Optional[int]:
    """Devuelve el entero si el identificador son solo dígitos ASCII, o None."""
    if identifier.isascii() and identifier.isdigit():
        return int(identifier)
    return None


def resolve(identifier: str, entities: Sequence[E]) -> Optional[E]:
    """
    Busca una lista o tarea a partir de lo que escribió el usuario.

    Orden de resolución (gana la primera coincidencia):
    1. Posición numérica dentro de [0, len(entities))
    2. Nombre exacto, sin distinguir mayúsculas
    3. Nombre que termina con el identificador, sin distinguir mayúsculas
       (permite escribir "Compras" para la lista "🛒 Compras")

    Una lista cuyo nombre es un número que también es una posición válida
    solo se puede alcanzar por su posición.

    Args:
        identifier: Índice o nombre escrito por el usuario
        entities: Entidades en el orden del servidor (deben tener display_name)

    Returns:
        La entidad encontrada o None
    """
    if not identifier:
        return None

    position = parse_position(identifier)
    if position is not None and position < len(entities):
        return entities[position]

    wanted = identifier.lower()
    for entity in entities:
        if entity.display_name.lower() == wanted:
            return entity

    for entity in entities:
        if entity.display_name.lower().endswith(wanted):
            return entity

    return None
