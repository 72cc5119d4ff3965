# src/streamed_zip/core/engine/__init__.py
"""
Engine de montagem do streamed-zip.

Este pacote contém os participantes de um build e o Orchestrator que os
coordena como processos do sistema operacional executando em paralelo.

Componentes principais:
    - process      → ProcessHandle (I/O não bloqueante servido por polling)
    - channels     → provisionamento de um FIFO por entrada
    - feeder       → copiador de stream por entrada (fonte → FIFO)
    - archiver     → processo compressor único (FIFOs → stdout)
    - orchestrator → máquina de estados e loop de liveness
    - capabilities → probe de utilitários externos e self-test

Invariantes:
    - Todos os FIFOs existem antes de qualquer processo iniciar
    - O Archiver inicia antes dos Feeders
    - Nenhum processo sobrevive ao fim de um build

Limites explícitos:
    - Não valida caminhos (ver `core.workspace`)
    - Não faz retries
"""
