"""
Atlas DataLake — orquestração de pipelines de dados incrementais.

Um pipeline é um DAG de Actions que leem e escrevem data objects
particionados. A cada run, execution modes calculam o trabalho incremental,
transformers encadeados produzem as saídas e constraints/expectations
validam o resultado antes que a run seja considerada concluída.

Arquitetura em alto nível:
    - core.pipeline     → SubFeed, PhaseResult, RunContext, condições, registries
    - core.engine       → planejamento (DAG) e execução das fases
    - core.config       → carga, merge, hashing e construção do pipeline
    - core.traceability → manifest e Event Log
    - dataobjects       → tabelas particionadas em memória e em CSV
    - execution         → execution modes incrementais
    - transformers      → transformers e cadeia de transformers
    - expectations      → constraints e expectations
    - actions           → DataFrameAction e CopyAction
    - compute           → compute engine de referência (pandas)
"""

__version__ = "0.1.0"
