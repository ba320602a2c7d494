# tests/conftest.py
"""
Fixtures compartilhados para testes do Atlas DataLake.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração mínima e determinística
- contextos de execução controlados (RunContext) para init e exec
- data objects em memória com dados pequenos e conhecidos

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - `run_id` e `created_at` são fixos para garantir determinismo
    - Data objects de arquivo são criados nos próprios testes (tmp_path)

Invariantes:
    - Nenhuma fixture executa pipeline real
    - Nenhuma fixture realiza I/O
    - Cada teste recebe instâncias novas (sem estado compartilhado)

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica de domínio
"""

from datetime import datetime, timezone

import pandas as pd
import pytest

from atlas_datalake.core.pipeline.context import RunContext
from atlas_datalake.core.pipeline.types import ExecutionPhase
from atlas_datalake.dataobjects.memory import InMemoryDataObject


RUN_CREATED_AT = datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def dummy_config() -> dict:
    """Configuração mínima já resolvida (sem loader nem merge)."""
    return {
        "engine": {"fail_fast": True},
        "global": {"allow_overwrite_all_partitions_without_partition_values": []},
    }


@pytest.fixture
def exec_ctx(dummy_config) -> RunContext:
    """RunContext determinístico na fase exec."""
    return RunContext(
        run_id="run-test-001",
        created_at=RUN_CREATED_AT,
        config=dummy_config,
        phase=ExecutionPhase.EXEC,
        meta={"source": "pytest"},
    )


@pytest.fixture
def init_ctx(exec_ctx) -> RunContext:
    """Mesmo run de `exec_ctx`, derivado para a fase init (eventos compartilhados)."""
    return exec_ctx.for_phase(ExecutionPhase.INIT)


@pytest.fixture
def ratings_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "dt": ["20260101", "20260101", "20260102", "20260102", "20260102"],
            "user": ["a", "b", "a", "c", "d"],
            "rating": [5, 3, 4, 1, 2],
        }
    )


@pytest.fixture
def ratings_source(ratings_df) -> InMemoryDataObject:
    """Fonte particionada por `dt` com duas partições (2 e 3 linhas)."""
    return InMemoryDataObject(
        "src_ratings",
        data=ratings_df,
        partitions=["dt"],
        schema={"dt": "object", "user": "object", "rating": "int64"},
    )


@pytest.fixture
def ratings_target() -> InMemoryDataObject:
    """Destino vazio, particionado por `dt`, com schema declarado para o dry-run."""
    return InMemoryDataObject(
        "tgt_ratings",
        partitions=["dt"],
        schema={"dt": "object", "user": "object", "rating": "int64"},
    )
