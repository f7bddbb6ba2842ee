"""Partially signed transaction encoding via embit."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from embit.base import EmbitError
from embit.psbt import PSBT
from embit.script import Script, address_to_scriptpubkey
from embit.transaction import SIGHASH, Transaction, TransactionInput, TransactionOutput

from delegate_ledger.domain.model import SignatureScope
from delegate_ledger.domain.ports import IntentEncoder, LockingScriptDeriver

if TYPE_CHECKING:
    from delegate_ledger.domain.model import TransferIntent

log = getLogger(__name__)

# opt into replace-by-fee so an unfilled proposal can be superseded
SEQUENCE_RBF = 0xFFFFFFFD

_SIGHASH_BY_SCOPE: dict[SignatureScope, int] = {
    SignatureScope.ALL: SIGHASH.ALL,
    SignatureScope.SINGLE_ANYONECANPAY: SIGHASH.SINGLE | SIGHASH.ANYONECANPAY,
}


def sighash_for(scope: SignatureScope) -> int:
    return _SIGHASH_BY_SCOPE[scope]


def derive_locking_script(address: str) -> str:
    """Return the hex scriptPubKey for ``address``; raises ``ValueError`` if unparseable."""

    try:
        script = address_to_scriptpubkey(address)
    except (EmbitError, ValueError, IndexError) as exc:
        msg = f"Cannot derive locking script from address {address!r}"
        raise ValueError(msg) from exc
    return script.data.hex()


def encode_psbt(intent: TransferIntent) -> str:
    """Serialise ``intent`` as an unsigned base64 PSBT.

    Every input carries its witness UTXO so the signer can compute the sighash
    without a node. Under the single/anyone-can-pay scope only input 0 is marked,
    so the signature commits to input 0 and output 0 and nothing else.
    """

    try:
        vin = [
            TransactionInput(bytes.fromhex(entry.txid), entry.vout, sequence=SEQUENCE_RBF)
            for entry in intent.inputs
        ]
        vout = [
            TransactionOutput(output.value, address_to_scriptpubkey(output.address))
            for output in intent.outputs
        ]
        psbt = PSBT(Transaction(version=2, vin=vin, vout=vout))
        for scope, entry in zip(psbt.inputs, intent.inputs, strict=True):
            scope.witness_utxo = TransactionOutput(
                entry.value, Script(bytes.fromhex(entry.locking_script))
            )
    except (EmbitError, ValueError, IndexError) as exc:
        msg = f"Cannot encode proposal for {intent.asset_ref}: {exc}"
        raise ValueError(msg) from exc

    if intent.signature_scope is not SignatureScope.ALL:
        psbt.inputs[0].sighash_type = sighash_for(intent.signature_scope)

    encoded = psbt.to_string()
    log.debug(
        "Encoded proposal for %s: %s inputs, %s outputs, scope %s",
        intent.asset_ref,
        len(vin),
        len(vout),
        intent.signature_scope,
    )
    return encoded


def decode_psbt(encoded: str) -> PSBT:
    return PSBT.from_string(encoded)


if TYPE_CHECKING:
    _encoder_check: IntentEncoder = encode_psbt
    _deriver_check: LockingScriptDeriver = derive_locking_script
