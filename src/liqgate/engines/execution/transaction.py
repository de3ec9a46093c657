"""
transaction.py - Unsigned transaction skeleton handed to the submitter

The AMM SDK builds the instruction list; the submitter only ever appends the
compute-unit-price instruction (once, before the first signature) and signs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from solders.compute_budget import set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction


@dataclass(frozen=True)
class SignedTransaction:
    raw: bytes
    signature: str


@dataclass
class UnsignedTransaction:
    instructions: List[Instruction]
    fee_payer: Pubkey
    recent_blockhash: Hash
    last_valid_block_height: Optional[int] = None
    priority_fee_micro_lamports: Optional[int] = field(default=None, init=False)

    @property
    def required_signers(self) -> Set[Pubkey]:
        """Pubkeys that must sign, derived from the compiled message."""
        message = self._message()
        count = message.header.num_required_signatures
        return set(message.account_keys[:count])

    def attach_priority_fee(self, micro_lamports: int) -> Instruction:
        """Append set_compute_unit_price. Changes the signed payload, so call before signing."""
        if self.priority_fee_micro_lamports is not None:
            raise ValueError(
                f"priority fee already attached ({self.priority_fee_micro_lamports} micro-lamports/CU)"
            )
        ix = set_compute_unit_price(int(micro_lamports))
        self.instructions.append(ix)
        self.priority_fee_micro_lamports = int(micro_lamports)
        return ix

    def sign(self, signers: Sequence[Keypair]) -> SignedTransaction:
        required = self.required_signers
        by_pubkey = {kp.pubkey(): kp for kp in signers}
        missing = required - set(by_pubkey)
        if missing:
            raise ValueError(f"missing required signers: {sorted(str(pk) for pk in missing)}")

        # solders rejects keypairs the message does not require
        needed = [kp for pk, kp in by_pubkey.items() if pk in required]
        tx = Transaction(needed, self._message(), self.recent_blockhash)
        return SignedTransaction(raw=bytes(tx), signature=str(tx.signatures[0]))

    def _message(self) -> Message:
        return Message.new_with_blockhash(self.instructions, self.fee_payer, self.recent_blockhash)
