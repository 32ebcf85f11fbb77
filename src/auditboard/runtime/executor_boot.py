# src/auditboard/runtime/executor_boot.py

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from auditboard.ledger.constants import DEFAULT_CONTRACT_ACCOUNT
from auditboard.runtime.executor import BoardExecutor
from auditboard.runtime.genesis_config import GenesisConfig, load_genesis
from auditboard.runtime.local_collaborators import collaborators_from_genesis


@dataclass
class ExecutorBootConfig:
    db_path: str
    node_id: str
    chain_id: str
    contract_account: str
    genesis_path: str = ""


def boot_config_from_env() -> ExecutorBootConfig:
    return ExecutorBootConfig(
        db_path=os.environ.get("AUDITBOARD_DB_PATH", "./data/auditboard.db"),
        node_id=os.environ.get("AUDITBOARD_NODE_ID", "local-node"),
        chain_id=os.environ.get("AUDITBOARD_CHAIN_ID", "auditboard-dev"),
        contract_account=os.environ.get("AUDITBOARD_CONTRACT_ACCOUNT", DEFAULT_CONTRACT_ACCOUNT),
        genesis_path=os.environ.get("AUDITBOARD_GENESIS_PATH", ""),
    )


def build_executor(cfg: Optional[ExecutorBootConfig] = None) -> BoardExecutor:
    """Build a BoardExecutor wired to the in-process collaborators.

    `auditboard.api.app` calls this with no args, reading the environment.
    """
    c = cfg or boot_config_from_env()
    genesis = load_genesis(c.genesis_path) if c.genesis_path else GenesisConfig()
    token, membership, auth = collaborators_from_genesis(genesis)
    return BoardExecutor(
        db_path=c.db_path,
        node_id=c.node_id,
        chain_id=c.chain_id,
        token=token,
        membership=membership,
        auth=auth,
        contract_account=genesis.contract_account or c.contract_account,
        genesis=genesis,
    )
