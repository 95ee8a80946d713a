from txfeed.core.dto import RawLedgerTransaction, SignatureInfo, TokenAccountBalance
from txfeed.core.errors import DataSourceError
from txfeed.ports.chain_data_port import ChainDataPort
from typing import Optional, Dict, List

class StaticChainAdapter(ChainDataPort):
    """
    In-memory chain: signatures newest first, transactions keyed by signature.
    Signatures listed in `failing` raise DataSourceError when fetched.
    """

    def __init__(self,
                 signatures: Optional[Dict[str, List[SignatureInfo]]] = None,
                 transactions: Optional[Dict[str, RawLedgerTransaction]] = None,
                 balances: Optional[Dict[str, int]] = None,
                 token_balances: Optional[Dict[str, List[TokenAccountBalance]]] = None,
                 failing: Optional[List[str]] = None,
                 ):
        self._signatures = signatures or {}
        self._txs = transactions or {}
        self._balances = balances or {}
        self._token_balances = token_balances or {}
        self.failing = set(failing or [])
        self.signature_calls: List[tuple] = []
        self.transaction_calls: List[str] = []

    @classmethod
    def from_transactions(cls, address: str, txs: List[RawLedgerTransaction], **kwargs) -> "StaticChainAdapter":
        """Signature list for `address` in the given (newest first) order."""
        sigs = [SignatureInfo(signature=t.signature, block_time=t.block_time) for t in txs]
        return cls(signatures={address: sigs}, transactions={t.signature: t for t in txs}, **kwargs)

    def add_transactions(self, address: str, txs: List[RawLedgerTransaction]) -> None:
        """Prepend newer activity."""
        sigs = [SignatureInfo(signature=t.signature, block_time=t.block_time) for t in txs]
        self._signatures[address] = sigs + self._signatures.get(address, [])
        for t in txs:
            self._txs[t.signature] = t

    async def get_signatures_for_address(self, address, limit, before=None):
        self.signature_calls.append((address, limit, before))
        if address in self.failing:
            raise DataSourceError(f"static: signatures for {address} unavailable")
        items = list(self._signatures.get(address, []))
        if before is not None:
            idx = next((i for i, s in enumerate(items) if s.signature == before), None)
            items = items[idx + 1:] if idx is not None else []
        return items[:limit]

    async def get_parsed_transaction(self, signature):
        self.transaction_calls.append(signature)
        if signature in self.failing:
            raise DataSourceError(f"static: transaction {signature} unavailable")
        return self._txs.get(signature)

    async def get_balance(self, address):
        if address in self.failing:
            raise DataSourceError(f"static: balance for {address} unavailable")
        return int(self._balances.get(address, 0))

    async def get_token_balances_by_owner(self, address):
        if address in self.failing:
            raise DataSourceError(f"static: token accounts for {address} unavailable")
        return list(self._token_balances.get(address, []))
