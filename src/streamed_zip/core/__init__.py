# src/streamed_zip/core/__init__.py
"""
Core do streamed-zip.

Este pacote contém a implementação canônica da montagem de arquivos ZIP
por streaming: nenhum payload descomprimido é materializado em disco
persistente; cada entrada chega ao compressor por um FIFO próprio.

Componentes principais:
    - workspace    → diretório privado, contenção de caminhos e teardown
    - config       → defaults, merge determinístico, settings tipados e hashing
    - pipeline     → tipos canônicos, contexto de build e registro de entradas
    - engine       → canais, participantes (Feeder/Archiver) e Orchestrator
    - traceability → Manifest e Event Log de builds

Princípios fundamentais:
    - Nenhuma decisão silenciosa: falhas são explícitas e tipadas
    - Todo processo iniciado é reaped, com sucesso ou falha
    - Nenhum arquivo parcial é retornado

Limites explícitos:
    - Não implementa o formato ZIP nem algoritmos de compressão
    - Não lê nem extrai arquivos
"""
