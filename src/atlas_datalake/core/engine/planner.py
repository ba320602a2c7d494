"""
Planejador de execução do DAG de Actions.

As arestas não são declaradas: derivam dos data objects. Uma Action depende
da Action que escreve cada uma de suas entradas. Entradas recursivas são
saídas da própria Action e não geram aresta.

Decisões arquiteturais:
    - Ordenação topológica determinística (Kahn modificado)
    - Empates resolvidos por ordem lexicográfica de `action.id`
    - Erros estruturais são fatais e ocorrem antes de qualquer execução

Invariantes:
    - Nenhuma Action é executada antes das Actions que produzem suas entradas
    - Cada data object é escrito por no máximo uma Action
    - A mesma definição de pipeline produz sempre a mesma ordem

Limites explícitos:
    - Não executa Actions
    - Não interage com RunContext
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Set

from atlas_datalake.actions.base import Action
from atlas_datalake.core.exceptions import ConfigurationException


class CycleDetectedError(ValueError):
    """O grafo de dependências entre Actions contém um ciclo."""


def _by_id(actions: Iterable[Action]) -> Dict[str, Action]:
    by_id: Dict[str, Action] = {}
    for a in actions:
        aid = getattr(a, "id", None)
        if not isinstance(aid, str) or not aid.strip():
            raise ValueError("action.id must be a non-empty string")
        if aid in by_id:
            raise ValueError(f"Duplicate action id: {aid}")
        by_id[aid] = a
    return by_id


def action_dependencies(actions: Iterable[Action]) -> Dict[str, List[str]]:
    """action_id → ids das Actions que produzem suas entradas (ordenados)."""
    by_id = _by_id(actions)

    producers: Dict[str, str] = {}
    for aid, a in by_id.items():
        for output_id in a.output_ids:
            if output_id in producers:
                raise ConfigurationException(
                    f"({output_id}) data object escrito por mais de uma action: "
                    f"{producers[output_id]}, {aid}",
                    details={"data_object_id": output_id, "actions": [producers[output_id], aid]},
                )
            producers[output_id] = aid

    deps: Dict[str, List[str]] = {}
    for aid, a in by_id.items():
        upstream = {producers[i] for i in a.input_ids if i in producers and producers[i] != aid}
        deps[aid] = sorted(upstream)
    return deps


def plan_execution(actions: Iterable[Action]) -> List[Action]:
    """
    Valida o DAG e retorna as Actions em ordem topológica determinística.

    Raises:
        ValueError: id inválido ou duplicado.
        ConfigurationException: data object com mais de um produtor.
        CycleDetectedError: ciclo entre Actions.
    """
    action_list = list(actions)
    by_id = _by_id(action_list)
    deps = action_dependencies(action_list)

    incoming_count: Dict[str, int] = {aid: len(d) for aid, d in deps.items()}
    outgoing: Dict[str, Set[str]] = {aid: set() for aid in by_id}
    for aid, dlist in deps.items():
        for dep in dlist:
            outgoing[dep].add(aid)

    ready: List[str] = sorted(aid for aid, c in incoming_count.items() if c == 0)
    order_ids: List[str] = []

    while ready:
        aid = ready.pop(0)
        order_ids.append(aid)
        for child in sorted(outgoing[aid]):
            incoming_count[child] -= 1
            if incoming_count[child] == 0:
                ready.append(child)
                ready.sort()

    if len(order_ids) != len(by_id):
        remaining = sorted(set(by_id) - set(order_ids))
        raise CycleDetectedError(f"Cycle detected in action dependency graph: {remaining}")

    return [by_id[aid] for aid in order_ids]
