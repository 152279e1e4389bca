from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List


@dataclass
class TodoList:
    """Lista de tareas de Microsoft To Do."""

    id: str
    display_name: str
    raw: Dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_graph(cls, data: Dict) -> 'TodoList':
        return cls(id=data['id'], display_name=data.get('displayName', ''), raw=data)


@dataclass
class TodoTask:
    """Tarea de una lista. display_name es el título, para poder resolverla igual que una lista."""

    id: str
    title: str
    status: str = 'notStarted'
    importance: str = 'normal'
    body: str = ''
    raw: Dict = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        return self.title

    @property
    def is_completed(self) -> bool:
        return self.status == 'completed'

    @property
    def is_important(self) -> bool:
        return self.importance == 'high'

    @classmethod
    def from_graph(cls, data: Dict) -> 'TodoTask':
        return cls(
            id=data['id'],
            title=data.get('title', ''),
            status=data.get('status', 'notStarted'),
            importance=data.get('importance', 'normal'),
            body=(data.get('body') or {}).get('content', ''),
            raw=data,
        )


class EntityIndex:
    """
    Índice de listas en el orden devuelto por el servidor.

    Las posiciones numéricas que usa el resolver son exactamente este orden;
    nunca se reordena localmente. Cada populate reemplaza el contenido completo.
    """

    def __init__(self, entities: Iterable[TodoList] = ()):
        self._entities: List[TodoList] = list(entities)

    def replace(self, entities: Iterable[TodoList]):
        self._entities = list(entities)

    def clear(self):
        self._entities = []

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[TodoList]:
        return iter(self._entities)

    def __getitem__(self, position: int) -> TodoList:
        return self._entities[position]
