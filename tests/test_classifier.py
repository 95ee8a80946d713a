import unittest
from datetime import datetime, timezone
from decimal import Decimal

from txfeed.core.enums import EventType
from txfeed.services.classifier import format_transaction, format_transactions
from txfeed.services.counterparty import EXTERNAL

from ledger_builders import (
    ALICE,
    ALICE_ATA,
    BLOCK_TIME,
    BOB,
    FEE_PAYER,
    ME,
    MY_ATA,
    OTHER_MINT,
    make_tx,
    sol_receive,
    sol_send,
    system_transfer,
    token_balance,
    token_transfer,
    unknown_ix,
)


class NativeLegTests(unittest.TestCase):
    def test_sent_sol_with_zero_token_delta(self) -> None:
        tx = make_tx(
            signature="sigA",
            account_keys=(ME, ALICE, MY_ATA),
            pre=(5_000_000_000, 0, 2_039_280),
            post=(3_995_000_000, 1_005_000_000, 2_039_280),
            instructions=(system_transfer(ME, ALICE, 1_005_000_000),),
            pre_tokens=(token_balance(2, ME, "3"),),
            post_tokens=(token_balance(2, ME, "3"),),
        )

        events = format_transaction(ME, tx)

        self.assertEqual(len(events), 1)
        ev = events[0]
        self.assertEqual(ev.signature, "sigA")
        self.assertEqual(ev.type, EventType.SENT)
        self.assertEqual(ev.asset, "SOL")
        self.assertEqual(ev.amount, Decimal("1.005"))
        self.assertEqual(ev.from_address, ME)
        self.assertEqual(ev.to_address, ALICE)
        self.assertEqual(ev.time, datetime.fromtimestamp(BLOCK_TIME, tz=timezone.utc))

    def test_received_sol(self) -> None:
        events = format_transaction(ME, sol_receive("sigR", sender=BOB, lamports=2_500_000_000))
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].type, EventType.RECEIVED)
        self.assertEqual(events[0].amount, Decimal("2.5"))
        self.assertEqual((events[0].from_address, events[0].to_address), (BOB, ME))

    def test_dust_change_is_ignored(self) -> None:
        for delta in (-5000, -1, 0, 1, 5000):
            tx = make_tx(
                account_keys=(ME, ALICE),
                pre=(1_000_000, 0),
                post=(1_000_000 + delta, 0),
                instructions=(system_transfer(ME, ALICE, 1),),
            )
            self.assertEqual(format_transaction(ME, tx), [], delta)

    def test_just_above_dust_is_emitted(self) -> None:
        tx = make_tx(
            account_keys=(ME, ALICE),
            pre=(1_000_000, 0),
            post=(994_999, 5001),
        )
        events = format_transaction(ME, tx)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].amount, Decimal("0.000005001"))
        self.assertEqual(events[0].to_address, ALICE)

    def test_missing_balance_entries_emit_nothing(self) -> None:
        for pre, post in (
            ((7_000_000_000, 0), ()),
            ((), (7_000_000_000, 0)),
            ((0, 7_000_000_000), (0,)),
        ):
            tx = make_tx(
                account_keys=(ALICE, ME),
                pre=pre,
                post=post,
                instructions=(system_transfer(ME, ALICE, 1),),
            )
            self.assertEqual(format_transaction(ME, tx), [], (pre, post))

    def test_self_transfer_is_dropped(self) -> None:
        tx = make_tx(
            account_keys=(ME,),
            pre=(1_000_000_000,),
            post=(999_000_000,),
            instructions=(system_transfer(ME, ME, 1_000_000),),
        )
        self.assertEqual(format_transaction(ME, tx), [])

    def test_unresolvable_receiver_is_external(self) -> None:
        tx = make_tx(
            account_keys=(FEE_PAYER, ME),
            pre=(0, 1_000_000_000),
            post=(0, 400_000_000),
            instructions=(unknown_ix(),),
        )
        events = format_transaction(ME, tx)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].to_address, EXTERNAL)
        self.assertEqual(events[0].from_address, ME)


class TokenLegTests(unittest.TestCase):
    def _token_tx(self, pre_ui, post_ui, mint=None, instruction=None, **kw):
        extra = {"mint": mint} if mint else {}
        pre_tokens = kw.pop("pre_tokens", None)
        if pre_tokens is None:
            pre_tokens = (token_balance(1, ME, pre_ui, **extra),) if pre_ui is not None else ()
        return make_tx(
            signature=kw.pop("signature", "sigT"),
            account_keys=(ME, MY_ATA, ALICE_ATA),
            pre=(1_000_000_000, 2_039_280, 2_039_280),
            post=(1_000_000_000, 2_039_280, 2_039_280),
            instructions=(instruction or token_transfer(ALICE_ATA, MY_ATA, ALICE),),
            pre_tokens=pre_tokens + (token_balance(2, ALICE, "100", **extra),),
            post_tokens=(token_balance(1, ME, post_ui, **extra), token_balance(2, ALICE, "90", **extra)),
            **kw,
        )

    def test_received_usdc_uses_symbol(self) -> None:
        events = format_transaction(ME, self._token_tx("5", "15"))
        self.assertEqual(len(events), 1)
        ev = events[0]
        self.assertEqual(ev.asset, "USDC")
        self.assertEqual(ev.type, EventType.RECEIVED)
        self.assertEqual(ev.amount, Decimal("10"))
        self.assertEqual((ev.from_address, ev.to_address), (ALICE, ME))

    def test_unknown_mint_passes_through(self) -> None:
        events = format_transaction(ME, self._token_tx("1", "3", mint=OTHER_MINT))
        self.assertEqual(events[0].asset, OTHER_MINT)

    def test_missing_pre_balance_counts_as_zero(self) -> None:
        events = format_transaction(ME, self._token_tx(None, "2.25"))
        self.assertEqual(events[0].amount, Decimal("2.25"))
        self.assertEqual(events[0].type, EventType.RECEIVED)

    def test_zero_token_delta_is_skipped(self) -> None:
        self.assertEqual(format_transaction(ME, self._token_tx("4", "4")), [])

    def test_sent_tokens(self) -> None:
        tx = self._token_tx("10", "7.5", instruction=token_transfer(MY_ATA, ALICE_ATA, ME))
        events = format_transaction(ME, tx)
        self.assertEqual(events[0].type, EventType.SENT)
        self.assertEqual(events[0].amount, Decimal("2.5"))
        self.assertEqual((events[0].from_address, events[0].to_address), (ME, ALICE))

    def test_balances_owned_by_others_are_ignored(self) -> None:
        tx = make_tx(
            account_keys=(ME, ALICE_ATA),
            pre_tokens=(token_balance(1, ALICE, "1"),),
            post_tokens=(token_balance(1, ALICE, "2"),),
            instructions=(token_transfer(None, ALICE_ATA, None),),
            pre=(1, 1),
            post=(1, 1),
        )
        self.assertEqual(format_transaction(ME, tx), [])

    def test_missing_counterparty_owner_gives_external(self) -> None:
        # the transfer names no source account and no owner is known for it
        tx = self._token_tx(
            "0", "5",
            instruction=token_transfer(None, MY_ATA, None),
        )
        events = format_transaction(ME, tx)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].from_address, EXTERNAL)
        self.assertEqual(events[0].to_address, ME)

    def test_minted_tokens_without_instruction_are_dropped_as_self_transfer(self) -> None:
        # external/external from the resolver is a from == to artifact
        tx = self._token_tx("0", "5", instruction=unknown_ix())
        self.assertEqual(format_transaction(ME, tx), [])


class TransactionLevelTests(unittest.TestCase):
    def test_failed_transaction_contributes_nothing(self) -> None:
        tx = sol_send("sigF")
        failed = make_tx(
            signature="sigF",
            account_keys=tx.account_keys,
            pre=tx.pre_balances,
            post=tx.post_balances,
            instructions=tx.instructions,
            post_tokens=(token_balance(0, ME, "1"),),
            err={"InstructionError": [0, "Custom"]},
        )
        self.assertEqual(format_transaction(ME, failed), [])

    def test_missing_meta_is_skipped(self) -> None:
        self.assertEqual(format_transaction(ME, make_tx(account_keys=(ME,), has_meta=False)), [])
        self.assertEqual(format_transaction(ME, make_tx(account_keys=())), [])

    def test_native_and_token_legs_share_signature_and_time(self) -> None:
        tx = make_tx(
            signature="sigBoth",
            account_keys=(ME, ALICE, MY_ATA, ALICE_ATA),
            pre=(3_000_000_000, 0, 0, 2_039_280),
            post=(1_997_955_720, 1_000_000_000, 2_039_280, 2_039_280),
            instructions=(system_transfer(ME, ALICE, 1_000_000_000), token_transfer(ALICE_ATA, MY_ATA, ALICE)),
            pre_tokens=(token_balance(3, ALICE, "50"),),
            post_tokens=(token_balance(2, ME, "20"), token_balance(3, ALICE, "30")),
            block_time=None,
        )
        events = format_transaction(ME, tx)

        self.assertEqual([e.asset for e in events], ["SOL", "USDC"])
        self.assertEqual({e.signature for e in events}, {"sigBoth"})
        self.assertTrue(all(e.time is None for e in events))
        self.assertEqual(events[0].type, EventType.SENT)
        self.assertEqual(events[1].type, EventType.RECEIVED)

    def test_every_event_has_tracked_wallet_on_exactly_one_side(self) -> None:
        txs = [
            sol_send("s1"),
            sol_receive("s2"),
            make_tx(signature="s3", account_keys=(ALICE, ME), pre=(0, 9_000_000), post=(8_000_000, 1_000_000)),
            make_tx(signature="s4", account_keys=(ME,), pre=(9,), post=(1_000_000_000,)),
        ]
        events = format_transactions(ME, txs + [None])

        self.assertEqual(len(events), 4)
        for ev in events:
            self.assertTrue((ev.from_address == ME) != (ev.to_address == ME), ev)
            self.assertGreater(ev.amount, 0)

    def test_output_follows_input_order(self) -> None:
        events = format_transactions(ME, [sol_send("new"), sol_receive("mid"), sol_send("old")])
        self.assertEqual([e.signature for e in events], ["new", "mid", "old"])


if __name__ == "__main__":
    unittest.main()
