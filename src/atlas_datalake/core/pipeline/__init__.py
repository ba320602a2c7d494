# src/atlas_datalake/core/pipeline/__init__.py
"""
# Pipeline Core — Atlas DataLake

Este pacote define os **contratos canônicos** e as **estruturas fundamentais**
trocadas entre Actions e o Engine.

Um pipeline é modelado como um **DAG de Actions** ligadas por data objects:
- cada Action lê SubFeeds de entrada e emite SubFeeds de saída
- a execução é coordenada exclusivamente pelo Engine
- o estado da run é mediado pelo `RunContext`

## Componentes

- **subfeed**: `SubFeed`, mensagem imutável de uma aresta do DAG
- **types**: `ExecutionPhase`, `ActionState`, `PhaseStatus`, `PhaseResult`,
  `ActionStatus`, `ActionResult`
- **context**: `RunContext` (fase, config, state store, logs, warnings)
- **condition**: `Condition`, condição de execução sobre os SubFeeds de entrada
- **registry**: `ActionRegistry`, `PluginRegistry`, `CUSTOM_LOGIC`

## Princípios Fundamentais

- Skip e no-data são resultados tipados, não exceções
- Plugins são resolvidos por tag registrada, nunca por reflexão
- Nenhuma decisão implícita ou silenciosa
"""
