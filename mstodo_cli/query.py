"""
Construcción de la consulta OData para listar tareas.

Combina los flags independientes de `show` (--limit, --skip, --filter,
--search, --orderby, --important) en una única consulta para Microsoft Graph.
Los predicados se unen siempre con `and`, en un orden fijo que no depende del
orden en que se escribieron los flags.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .exceptions import ValidationError

SEARCH_FIELDS = ('title', 'body/content')
IMPORTANT_CLAUSE = "importance eq 'high'"


@dataclass
class QuerySpec:
    """Paginación, filtro y orden de una consulta de tareas."""

    top: Optional[int] = None
    skip: Optional[int] = None
    filter: Optional[str] = None
    orderby: Optional[str] = None

    def is_empty(self) -> bool:
        return self.to_params() == {}

    def to_params(self) -> Dict[str, Union[int, str]]:
        """Parámetros $top, $skip, $filter y $orderby presentes."""
        params: Dict[str, Union[int, str]] = {}
        if self.top is not None:
            params['$top'] = self.top
        if self.skip is not None:
            params['$skip'] = self.skip
        if self.filter:
            params['$filter'] = self.filter
        if self.orderby:
            params['$orderby'] = self.orderby
        return params


def quote_literal(value: str) -> str:
    """Literal de texto OData: comillas simples, duplicando las internas."""
    return "'" + value.replace("'", "''") + "'"


def parse_count(flag: str, value: Union[int, str, None]) -> Optional[int]:
    """
    Convierte el valor de --limit/--skip en un entero no negativo.

    Raises:
        ValidationError: Si el valor no es un entero no negativo
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{flag} requiere un valor numérico.")
    if isinstance(value, int):
        number = value
    else:
        text = value.strip()
        if not text:
            return None
        if not re.fullmatch(r'\d+', text, re.ASCII):
            raise ValidationError(f"{flag} requiere un valor numérico no negativo (recibido: {value!r}).")
        number = int(text)
    if number < 0:
        raise ValidationError(f"{flag} requiere un valor numérico no negativo (recibido: {value!r}).")
    return number


def has_top_level_or(expression: str) -> bool:
    """True si la expresión contiene `or` fuera de paréntesis y de literales."""
    depth = 0
    in_string = False
    word = []
    for char in expression + ' ':
        if in_string:
            if char == "'":
                in_string = False
            continue
        if char.isalnum() or char == '_':
            word.append(char)
            continue
        if depth == 0 and ''.join(word).lower() == 'or':
            return True
        word = []
        if char == "'":
            in_string = True
        elif char == '(':
            depth += 1
        elif char == ')':
            depth = max(depth - 1, 0)
    return False


def search_clause(text: str) -> str:
    literal = quote_literal(text)
    return ' or '.join(f"contains({name},{literal})" for name in SEARCH_FIELDS)


def compose(
    limit: Union[int, str, None] = None,
    skip: Union[int, str, None] = None,
    filter: Optional[str] = None,
    search: Optional[str] = None,
    orderby: Optional[str] = None,
    important: bool = False,
) -> QuerySpec:
    """
    Construye la QuerySpec a partir de los flags de la línea de comandos.

    Los flags ausentes o vacíos no aportan nada. Con más de un predicado,
    la búsqueda va entre paréntesis, y también el filtro crudo si contiene
    un `or` de primer nivel; en otro caso el filtro se usa tal cual.

    Args:
        limit: Valor de --limit
        skip: Valor de --skip
        filter: Expresión OData de --filter
        search: Texto de --search (se busca en título y notas)
        orderby: Expresión de --orderby
        important: --important, solo tareas de importancia alta

    Returns:
        QuerySpec combinada

    Raises:
        ValidationError: Si --limit o --skip no son enteros no negativos
    """
    top = parse_count('--limit', limit)
    offset = parse_count('--skip', skip)

    raw_filter = filter.strip() if filter else ''
    # La búsqueda se respeta tal cual; solo se descarta si está en blanco
    search_text = search if search and search.strip() else ''

    clauses: List[str] = []
    if raw_filter:
        clauses.append(raw_filter)
    if search_text:
        clauses.append(search_clause(search_text))
    if important:
        clauses.append(IMPORTANT_CLAUSE)

    if len(clauses) > 1:
        clauses = [
            f"({clause})" if has_top_level_or(clause) else clause
            for clause in clauses
        ]

    return QuerySpec(
        top=top,
        skip=offset,
        filter=' and '.join(clauses) or None,
        orderby=orderby.strip() if orderby and orderby.strip() else None,
    )
