# src/trilha/core/__init__.py
"""
Core do Trilha.

Implementação independente de adapters: configuração, definição de
targets, grafo, planejamento, execução e rastreabilidade.

O core é projetado para ser:
    - determinístico
    - testável de forma isolada
    - livre de dependências de UI ou notebooks

Limites explícitos:
    - Não contém lógica de domínio (ver `trilha.steps` para exemplos)
    - Não renderiza grafos nem relatórios
"""
