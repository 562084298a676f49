"""
Blocos compartilhados do store consistente: logging, métricas, modelos e
leitura de variáveis de ambiente.
"""
