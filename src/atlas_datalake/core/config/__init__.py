"""
Camada de configuração do Atlas DataLake.

    - loader  → defaults obrigatórios + overrides locais opcionais (YAML/JSON)
    - merge   → deep-merge determinístico
    - hashing → hash canônico registrado no manifest
    - builder → data objects e actions a partir da configuração resolvida

Configuração não contém lógica de domínio; a mesma entrada sempre produz
a mesma configuração final.
"""
