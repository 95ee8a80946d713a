import json
import unittest
from decimal import Decimal
from unittest import mock

import httpx

from txfeed.adapters.chain.rpc_chain_adapter import RpcChainAdapter
from txfeed.core.errors import DataSourceError, RateLimitError

import rpc_payloads as p

RPC_URL = "http://rpc.test"


class _Node:
    """Scripted JSON-RPC node: method -> list of responses, served in order."""

    def __init__(self, script):
        self.script = {k: list(v) for k, v in script.items()}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        queue = self.script[body["method"]]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **item})


def _adapter(node, max_retries=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(node))
    return RpcChainAdapter(
        rpc_url=RPC_URL,
        client=client,
        requests_per_sec=1000,
        max_retries=max_retries,
    )


@mock.patch("txfeed.adapters.chain.rpc_chain_adapter.async_backoff_sleep", new_callable=mock.AsyncMock)
class RpcChainAdapterTests(unittest.IsolatedAsyncioTestCase):
    async def test_signatures_request_shape(self, _sleep) -> None:
        node = _Node({"getSignaturesForAddress": [{"result": p.signatures_result()}]})
        adapter = _adapter(node)

        sigs = await adapter.get_signatures_for_address(p.ME, limit=20, before="older")

        self.assertEqual([s.signature for s in sigs], ["5igSig111", "5igSig000"])
        params = node.requests[0]["params"]
        self.assertEqual(params[0], p.ME)
        self.assertEqual(params[1], {"limit": 20, "commitment": "confirmed", "before": "older"})

    async def test_first_page_has_no_before(self, _sleep) -> None:
        node = _Node({"getSignaturesForAddress": [{"result": []}]})
        self.assertEqual(await _adapter(node).get_signatures_for_address(p.ME, limit=1), [])
        self.assertNotIn("before", node.requests[0]["params"][1])

    async def test_parsed_transaction(self, _sleep) -> None:
        node = _Node({"getTransaction": [{"result": p.usdc_send_with_sol_transfer()}]})
        tx = await _adapter(node).get_parsed_transaction("5igSig111")

        self.assertEqual(tx.signature, "5igSig111")
        opts = node.requests[0]["params"][1]
        self.assertEqual(opts["encoding"], "jsonParsed")
        self.assertEqual(opts["maxSupportedTransactionVersion"], 0)
        self.assertEqual(opts["commitment"], "confirmed")

    async def test_unknown_transaction_is_none(self, _sleep) -> None:
        node = _Node({"getTransaction": [{"result": None}]})
        self.assertIsNone(await _adapter(node).get_parsed_transaction("nope"))

    async def test_rpc_error_raises_data_source_error(self, _sleep) -> None:
        node = _Node({"getTransaction": [{"error": {"code": -32602, "message": "Invalid param"}}]})
        with self.assertRaises(DataSourceError) as ctx:
            await _adapter(node).get_parsed_transaction("bad")
        self.assertIn("Invalid param", str(ctx.exception))

    async def test_transport_errors_are_retried(self, _sleep) -> None:
        node = _Node({
            "getBalance": [
                httpx.Response(502),
                httpx.Response(200, content=b"not json"),
                {"result": {"context": {"slot": 1}, "value": 1500000000}},
            ]
        })
        self.assertEqual(await _adapter(node).get_balance(p.ME), 1500000000)
        self.assertEqual(len(node.requests), 3)
        self.assertEqual(_sleep.await_count, 2)

    async def test_gives_up_after_retries(self, _sleep) -> None:
        node = _Node({"getBalance": [httpx.Response(503)]})
        with self.assertRaises(DataSourceError):
            await _adapter(node, max_retries=2).get_balance(p.ME)
        self.assertEqual(len(node.requests), 2)

    async def test_rate_limit_exhaustion(self, _sleep) -> None:
        node = _Node({"getBalance": [httpx.Response(429)]})
        with self.assertRaises(RateLimitError):
            await _adapter(node, max_retries=2).get_balance(p.ME)

    async def test_token_balances_by_owner(self, _sleep) -> None:
        row = {
            "pubkey": p.MY_ATA,
            "account": {"data": {"parsed": {"info": {
                "mint": p.USDC_MINT,
                "owner": p.ME,
                "tokenAmount": {"uiAmountString": "3.5"},
            }}}},
        }
        node = _Node({"getTokenAccountsByOwner": [{"result": {"context": {"slot": 1}, "value": [row, {"bad": 1}]}}]})
        accounts = await _adapter(node).get_token_balances_by_owner(p.ME)

        self.assertEqual(len(accounts), 1)
        self.assertEqual(accounts[0].ui_amount, Decimal("3.5"))
        self.assertEqual(node.requests[0]["params"][1], {"programId": p.TOKEN_PROGRAM_ID})

    async def test_invalid_balance_result(self, _sleep) -> None:
        node = _Node({"getBalance": [{"result": {"context": {}}}]})
        with self.assertRaises(DataSourceError):
            await _adapter(node).get_balance(p.ME)

    async def test_request_ids_increase(self, _sleep) -> None:
        node = _Node({"getBalance": [{"result": {"value": 1}}]})
        adapter = _adapter(node)
        await adapter.get_balance(p.ME)
        await adapter.get_balance(p.ME)
        self.assertLess(node.requests[0]["id"], node.requests[1]["id"])


if __name__ == "__main__":
    unittest.main()
