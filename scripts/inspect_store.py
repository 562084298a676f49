#!/usr/bin/env python3
"""
File: scripts/inspect_store.py
Ferramenta para inspecionar o ConsistentStore: lista entradas pendentes e
sequenciadas e permite submeter um certificado manualmente.
"""
import sys
import json
import argparse
from typing import List, Optional

from common.logging import setup_logging
from common.models import LogEntryType, LoggedCertificate
from common.utils import current_timestamp
from consistent_store import ConsistentStore, EntryHandle, StatusCode, build_client, build_store
from consistent_store.config import load_config

ACTIONS = ["pending", "sequenced", "submit"]
BACKENDS = ["etcd", "memory"]


def parse_args(argv: Optional[List[str]] = None):
    """Processa os argumentos da linha de comando."""
    parser = argparse.ArgumentParser(
        description="Inspeciona o store consistente de entradas do log"
    )

    parser.add_argument("action", choices=ACTIONS,
                        help="Ação a ser executada")
    parser.add_argument("--config", "-c", default=None,
                        help="Arquivo de configuração YAML (padrão: config/config.yaml)")
    parser.add_argument("--backend", "-b", choices=BACKENDS, default=None,
                        help="Sobrescreve o backend de coordenação da configuração")
    parser.add_argument("--leaf", default=None,
                        help="Certificado folha a submeter (ação submit)")
    parser.add_argument("--precert", action="store_true",
                        help="Submete como PRECERT_ENTRY (ação submit)")
    parser.add_argument("--debug", "-d", action="store_true",
                        help="Habilita logs de DEBUG")

    return parser.parse_args(argv)


def describe(handle: EntryHandle) -> dict:
    """Representação JSON de um handle."""
    return {
        "key": handle.key,
        "revision": handle.revision,
        "entry": json.loads(handle.entry.serialize())
    }


def run(args, store: ConsistentStore) -> int:
    """
    Executa a ação pedida sobre o store.

    Returns:
        int: 0 se a operação retornou OK (ou ALREADY_EXISTS em submit), 1 caso contrário.
    """
    if args.action == "submit":
        if not args.leaf:
            print("Erro: --leaf é obrigatório para submit", file=sys.stderr)
            return 1
        cert = LoggedCertificate(
            sct_timestamp=current_timestamp(),
            entry_type=LogEntryType.PRECERT_ENTRY if args.precert else LogEntryType.X509_ENTRY,
            leaf_certificate=args.leaf,
        )
        status = store.add_pending_entry(cert)
        print(json.dumps({"status": str(status), "entry": json.loads(cert.serialize())}, indent=2))
        return 0 if status.ok or status.code == StatusCode.ALREADY_EXISTS else 1

    entries: List[EntryHandle] = []
    if args.action == "pending":
        status = store.get_pending_entries(entries)
    else:
        status = store.get_sequenced_entries(entries)

    print(json.dumps({
        "status": str(status),
        "count": len(entries),
        "entries": [describe(handle) for handle in entries]
    }, indent=2))
    return 0 if status.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Ponto de entrada da ferramenta."""
    args = parse_args(argv)

    config = load_config(args.config)
    if args.backend:
        config["coordination"]["backend"] = args.backend

    logging_config = config.get("logging", {})
    setup_logging(
        "consistent_store",
        debug=args.debug or logging_config.get("debug", False),
        debug_level=logging_config.get("debugLevel"),
        log_dir=logging_config.get("dir") or "",
    )

    with build_client(config) as client:
        return run(args, build_store(config, client))


if __name__ == "__main__":
    sys.exit(main())
