from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from txfeed.core.dto import RawLedgerTransaction, SignatureInfo, TokenAccountBalance


class ChainDataPort(ABC):
    """
    Abstract Class for reading wallet history and balances from a Solana node.
    """

    # --- History ---

    @abstractmethod
    async def get_signatures_for_address(
        self,
        address: str,
        limit: int,
        before: Optional[str] = None,
    ) -> List[SignatureInfo]:
        """Newest first; `before` excludes that signature and everything newer."""
        raise NotImplementedError

    @abstractmethod
    async def get_parsed_transaction(self, signature: str) -> Optional[RawLedgerTransaction]:
        raise NotImplementedError

    # --- Balances ---

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Native balance in lamports."""
        raise NotImplementedError

    @abstractmethod
    async def get_token_balances_by_owner(self, address: str) -> List[TokenAccountBalance]:
        raise NotImplementedError
