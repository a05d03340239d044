"""
permitvault.cli
---------------

Permit tooling from the shell:

- domain : EIP-712 domain separator of a token instance
- digest : struct hash and signing digest of a permit
- sign   : sign a permit with a hex private key and print v / r / s
- demo   : deploy token + vault on a local chain, sign a permit and deposit

Examples
--------
# Domain separator for a token at a given address
python -m permitvault.cli domain --contract 0x5FbDB2315678afecb367f032d93F642f64180aa3

# Digest of a permit, as JSON
python -m permitvault.cli digest --contract 0x5F... --owner 0xf3... \\
    --spender 0xe7... --value 100 --nonce 0 --deadline 1700000000 --json

# End-to-end walkthrough with the default dev key
python -m permitvault.cli demo --amount 100
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, NoReturn, Optional

import typer

from . import config as pconfig
from . import logging as plog
from .chain import LocalChain
from .clock import ManualClock
from .eip712.domain import EIP712Domain
from .eip712.permit import PermitMessage, digest, struct_hash
from .eip712.signature import address_of, sign
from .errors import PermitVaultError
from .utils.bytes import checksum, to_hex
from .version import version_string

# Hardhat/anvil account #0; public dev key, never use with real funds.
DEV_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

app = typer.Typer(
    name="permitvault",
    add_completion=False,
    no_args_is_help=True,
    help="EIP-712 permit tooling and a local vault walkthrough.",
)

_state: Dict[str, Any] = {"config": None}


# -------------------- utils --------------------


def _cfg() -> pconfig.Config:
    cfg = _state.get("config")
    if cfg is None:
        cfg = pconfig.load()
        _state["config"] = cfg
    return cfg


def _emit(payload: Dict[str, Any], json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    width = max(len(k) for k in payload)
    for k, v in payload.items():
        typer.echo(f"{k:<{width}}  {v}")


def _fail(err: PermitVaultError, json_out: bool) -> NoReturn:
    if json_out:
        typer.echo(json.dumps({"error": err.to_dict()}, indent=2, sort_keys=True))
    else:
        typer.secho(str(err), fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _domain(name: Optional[str], version: Optional[str], chain_id: Optional[int], contract: str) -> EIP712Domain:
    cfg = _cfg()
    return EIP712Domain(
        name=name or cfg.token.name,
        version=version or cfg.token.version,
        chain_id=chain_id if chain_id is not None else cfg.chain.chain_id,
        verifying_contract=contract,
    )


def _deadline(deadline: Optional[int], now: int) -> int:
    return deadline if deadline is not None else now + _cfg().permit.default_ttl


_NAME_OPT = typer.Option(None, "--name", help="Token name (domain field; default from config).")
_VERSION_OPT = typer.Option(None, "--version", help="Domain version (default from config).")
_CHAIN_OPT = typer.Option(None, "--chain-id", help="Chain id (default from config).")
_JSON_OPT = typer.Option(False, "--json", help="Output as JSON.")


# -------------------- commands --------------------


@app.command("domain")
def cmd_domain(
    contract: str = typer.Option(..., "--contract", help="Token (verifying contract) address."),
    name: Optional[str] = _NAME_OPT,
    version: Optional[str] = _VERSION_OPT,
    chain_id: Optional[int] = _CHAIN_OPT,
    json_out: bool = _JSON_OPT,
) -> None:
    """Print the domain separator."""
    try:
        dom = _domain(name, version, chain_id, contract)
    except PermitVaultError as e:
        _fail(e, json_out)
    _emit({**dom.to_dict(), "separator": to_hex(dom.separator)}, json_out)


@app.command("digest")
def cmd_digest(
    contract: str = typer.Option(..., "--contract", help="Token (verifying contract) address."),
    owner: str = typer.Option(..., "--owner", help="Permit owner address."),
    spender: str = typer.Option(..., "--spender", help="Permit spender address."),
    value: int = typer.Option(..., "--value", min=0, help="Allowance value (smallest unit)."),
    nonce: int = typer.Option(0, "--nonce", min=0, help="Owner's current nonce."),
    deadline: int = typer.Option(..., "--deadline", min=0, help="Expiry, epoch seconds."),
    name: Optional[str] = _NAME_OPT,
    version: Optional[str] = _VERSION_OPT,
    chain_id: Optional[int] = _CHAIN_OPT,
    json_out: bool = _JSON_OPT,
) -> None:
    """Print the struct hash and the signing digest of a permit."""
    try:
        dom = _domain(name, version, chain_id, contract)
        msg = PermitMessage(owner=owner, spender=spender, value=value, nonce=nonce, deadline=deadline)
    except PermitVaultError as e:
        _fail(e, json_out)
    _emit(
        {
            "domain_separator": to_hex(dom.separator),
            "struct_hash": to_hex(struct_hash(msg)),
            "digest": to_hex(digest(dom.separator, msg)),
        },
        json_out,
    )


@app.command("sign")
def cmd_sign(
    contract: str = typer.Option(..., "--contract", help="Token (verifying contract) address."),
    spender: str = typer.Option(..., "--spender", help="Permit spender address."),
    value: int = typer.Option(..., "--value", min=0, help="Allowance value (smallest unit)."),
    nonce: int = typer.Option(0, "--nonce", min=0, help="Owner's current nonce."),
    deadline: Optional[int] = typer.Option(None, "--deadline", min=0, help="Expiry; default now + permit TTL."),
    key: str = typer.Option(
        DEV_PRIVATE_KEY, "--key", envvar="PERMITVAULT_PRIVATE_KEY", help="Owner private key (hex)."
    ),
    now: Optional[int] = typer.Option(None, "--now", help="Reference time for the default deadline."),
    name: Optional[str] = _NAME_OPT,
    version: Optional[str] = _VERSION_OPT,
    chain_id: Optional[int] = _CHAIN_OPT,
    json_out: bool = _JSON_OPT,
) -> None:
    """Sign a permit; the owner is the key's address."""
    try:
        dom = _domain(name, version, chain_id, contract)
        owner = address_of(key)
        msg = PermitMessage(
            owner=owner,
            spender=spender,
            value=value,
            nonce=nonce,
            deadline=_deadline(deadline, int(time.time()) if now is None else now),
        )
        sig = sign(digest(dom.separator, msg), key)
    except PermitVaultError as e:
        _fail(e, json_out)
    _emit(
        {
            "owner": checksum(owner),
            "deadline": msg.deadline,
            "v": sig.v_ethereum,
            "r": "0x" + sig.r.to_bytes(32, "big").hex(),
            "s": "0x" + sig.s.to_bytes(32, "big").hex(),
            "signature": sig.to_hex(),
        },
        json_out,
    )


@app.command("demo")
def cmd_demo(
    amount: int = typer.Option(100, "--amount", min=0, help="Whole tokens to deposit."),
    key: str = typer.Option(
        DEV_PRIVATE_KEY, "--key", envvar="PERMITVAULT_PRIVATE_KEY", help="Deployer/owner private key (hex)."
    ),
    start: Optional[int] = typer.Option(None, "--start", help="Chain start time (epoch seconds)."),
    json_out: bool = _JSON_OPT,
) -> None:
    """Deploy token + vault, sign a permit for the vault and deposit through it."""
    cfg = _cfg()
    chain = LocalChain.from_config(cfg, clock=ManualClock(start))
    try:
        owner = address_of(key)
        token = chain.deploy_token(
            owner,
            cfg.token.name,
            cfg.token.symbol,
            cfg.token.initial_supply,
            version=cfg.token.version,
            decimals=cfg.token.decimals,
        )
        vault = chain.deploy_vault(owner, token)

        value = amount * 10**token.decimals
        nonce = token.nonces(owner)
        deadline = chain.now() + cfg.permit.default_ttl
        msg = PermitMessage(owner=owner, spender=vault.address, value=value, nonce=nonce, deadline=deadline)
        sig = sign(token.authority.permit_digest(msg), key)
        receipt = vault.deposit_with_permit(value, deadline, sig, nonce, owner)
    except PermitVaultError as e:
        _fail(e, json_out)

    _emit(
        {
            "chain_id": chain.chain_id,
            "token": checksum(token.address),
            "vault": checksum(vault.address),
            "owner": checksum(owner),
            "deposited": receipt.value,
            "owner_balance": token.balance_of(owner),
            "vault_balance": vault.custodial_balance(),
            "owner_nonce": token.nonces(owner),
        },
        json_out,
    )


@app.command("version")
def cmd_version() -> None:
    """Print the package version."""
    typer.echo(version_string())


@app.callback()
def main(
    config_file: Optional[str] = typer.Option(None, "--config", help="TOML or JSON config file."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override logging level."),
) -> None:
    """Load configuration and set up logging for every command."""
    overrides: Dict[str, Any] = {}
    if log_level:
        overrides["logging"] = {"level": log_level}
    try:
        cfg = pconfig.load(config_file, **overrides)
    except PermitVaultError as e:
        _fail(e, False)
    _state["config"] = cfg
    plog.configure_from_config(cfg)


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
