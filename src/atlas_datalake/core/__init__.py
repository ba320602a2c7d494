"""
Core do Atlas DataLake: protocolo de fases, engine, configuração e rastreabilidade.

Nenhuma decisão silenciosa: skip, no-data e erros são sempre explícitos.
"""
