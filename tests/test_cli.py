import json
from pathlib import Path
import tempfile
import unittest
from unittest.mock import patch

from click.testing import CliRunner

import qparas.cli as cli_mod
from qparas.client import ParasError


def _parse_first_json_blob(text: str):
    decoder = json.JSONDecoder()
    payload, _ = decoder.raw_decode(text.lstrip())
    return payload


def _cursor_page(*records):
    return {"status": 1, "data": {"results": list(records), "skip": 0, "limit": 30}}


def _fake_client(*bodies):
    """Build a client class that serves ``bodies`` in order and records calls."""

    class FakeClient:
        instances = []
        calls = []
        pending = list(bodies)

        def __init__(self, base_url: str, **kwargs):
            self.base_url = base_url
            self.timeout = kwargs.get("timeout")
            self.retries = kwargs.get("retries")
            self.retry_backoff_ms = kwargs.get("retry_backoff_ms")
            self.closed = False
            FakeClient.instances.append(self)

        def get(self, path, params):
            FakeClient.calls.append((path, list(params)))
            body = FakeClient.pending.pop(0)
            if isinstance(body, Exception):
                raise body
            return body

        def close(self):
            self.closed = True

    return FakeClient


class CliTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.env = {
            "QPARAS_CONFIG": str(Path(self._tmp.name) / "no_config.json"),
            "PARAS_URL": "",
            "QPARAS_OUTPUT": "",
            "QPARAS_MAX_PAGES": "",
            "QPARAS_LOG_LEVEL": "",
        }

    def invoke(self, client_cls, args, **env):
        merged = dict(self.env)
        merged.update(env)
        with patch.object(cli_mod, "ParasClient", client_cls):
            return self.runner.invoke(cli_mod.main, args, env=merged)

    def test_pages_until_empty(self):
        client = _fake_client(
            _cursor_page({"_id": "a"}, {"_id": "b"}),
            _cursor_page({"_id": "c"}, {"_id": "d"}),
            _cursor_page(),
        )
        result = self.invoke(client, ["token-series", "collection_id=mint.havendao.near"])

        self.assertEqual(result.exit_code, 0)
        payload = _parse_first_json_blob(result.output)
        self.assertEqual([r["_id"] for r in payload], ["a", "b", "c", "d"])
        self.assertIn("(Pages: 3, Entries: 4)", result.output)
        self.assertEqual(len(client.calls), 3)
        self.assertEqual(client.calls[0][0], "token-series")
        self.assertIn(("_id_next", "b"), client.calls[1][1])
        self.assertTrue(client.instances[0].closed)

    def test_single_value(self):
        client = _fake_client({"a": 1})
        result = self.invoke(client, ["collection-stats", "collection_id=x"])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(_parse_first_json_blob(result.output), {"a": 1})
        self.assertIn("(Pages: 1, Entries: 1)", result.output)
        self.assertEqual(len(client.calls), 1)

    def test_sort_continuation_sent(self):
        client = _fake_client(_cursor_page({"price": 12.5, "_id": "x1"}), _cursor_page())
        result = self.invoke(client, ["token-series", "__sort=price::-1"])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(client.calls[1][1][-2:], [("_id_next", "x1"), ("price_next", "12.5")])

    def test_invalid_token_sends_nothing(self):
        client = _fake_client()
        result = self.invoke(client, ["token-series", "badtoken"])

        self.assertEqual(result.exit_code, 2)
        payload = _parse_first_json_blob(result.output)
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["error"]["code"], "VALIDATION")
        self.assertEqual(client.instances, [])
        self.assertEqual(client.calls, [])

    def test_invalid_sort_spec(self):
        result = self.invoke(_fake_client(), ["token-series", "__sort=::1"])

        self.assertEqual(result.exit_code, 2)
        self.assertIn("invalid sort key spec", _parse_first_json_blob(result.output)["error"]["message"])

    def test_invalid_min(self):
        result = self.invoke(_fake_client(), ["token-series", "__min=lots"])

        self.assertEqual(result.exit_code, 2)

    def test_missing_path(self):
        result = self.invoke(_fake_client(), [])

        self.assertEqual(result.exit_code, 2)
        self.assertEqual(_parse_first_json_blob(result.output)["error"]["code"], "VALIDATION")

    def test_http_error_maps_to_exit_code(self):
        client = _fake_client(ParasError("HTTP", "not found", 404))
        result = self.invoke(client, ["nope"])

        self.assertEqual(result.exit_code, 12)
        payload = _parse_first_json_blob(result.output)
        self.assertEqual(payload["error"]["status"], 404)
        self.assertFalse(payload["error"]["retryable"])

    def test_rate_limit_is_retryable(self):
        client = _fake_client(ParasError("HTTP", "slow down", 429))
        result = self.invoke(client, ["token-series"])

        self.assertEqual(result.exit_code, 11)
        self.assertTrue(_parse_first_json_blob(result.output)["error"]["retryable"])

    def test_network_error(self):
        client = _fake_client(ParasError("NETWORK", "connection refused", 0))
        result = self.invoke(client, ["token-series"])

        self.assertEqual(result.exit_code, 13)

    def test_single_value_after_pages_is_unexpected(self):
        client = _fake_client(_cursor_page({"_id": "a"}), {"status": 0})
        result = self.invoke(client, ["token-series"])

        self.assertEqual(result.exit_code, 17)
        self.assertEqual(_parse_first_json_blob(result.output)["error"]["code"], "UNEXPECTED")

    def test_ndjson_output(self):
        client = _fake_client(_cursor_page({"_id": "a"}, {"_id": "b"}), _cursor_page())
        result = self.invoke(client, ["--output", "ndjson", "--quiet", "token-series"])

        self.assertEqual(result.exit_code, 0)
        lines = [line for line in result.output.splitlines() if line.strip()]
        self.assertEqual([json.loads(line)["_id"] for line in lines], ["a", "b"])

    def test_max_pages(self):
        client = _fake_client(_cursor_page({"_id": "a"}), _cursor_page({"_id": "b"}))
        result = self.invoke(client, ["--max-pages", "1", "token-series"])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(len(client.calls), 1)

    def test_base_url_from_env(self):
        client = _fake_client({"a": 1})
        result = self.invoke(client, ["token-series"], PARAS_URL="https://staging.example/")

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(client.instances[0].base_url, "https://staging.example")

    def test_flag_overrides_env_and_config(self):
        cfg = Path(self._tmp.name) / "config.json"
        cfg.write_text(json.dumps({"base_url": "https://cfg.example", "timeout": 5}), encoding="utf-8")
        client = _fake_client({"a": 1})
        result = self.invoke(
            client,
            ["--base-url", "https://flag.example", "token-series"],
            PARAS_URL="https://env.example",
            QPARAS_CONFIG=str(cfg),
        )

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(client.instances[0].base_url, "https://flag.example")
        self.assertEqual(client.instances[0].timeout, 5.0)

    def test_transport_flags_flow_to_client(self):
        client = _fake_client({"a": 1})
        result = self.invoke(
            client,
            ["--timeout", "12.5", "--retries", "3", "--retry-backoff-ms", "400", "token-series"],
        )

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(client.instances[0].timeout, 12.5)
        self.assertEqual(client.instances[0].retries, 3)
        self.assertEqual(client.instances[0].retry_backoff_ms, 400)

    def test_invalid_config_json(self):
        cfg = Path(self._tmp.name) / "config.json"
        cfg.write_text("{not json", encoding="utf-8")
        client = _fake_client()
        result = self.invoke(client, ["token-series"], QPARAS_CONFIG=str(cfg))

        self.assertEqual(result.exit_code, 2)
        self.assertEqual(_parse_first_json_blob(result.output)["error"]["code"], "CONFIG")
        self.assertEqual(client.calls, [])

    def test_out_of_range_timeout(self):
        result = self.invoke(_fake_client(), ["--timeout", "0", "token-series"])

        self.assertEqual(result.exit_code, 2)
        self.assertEqual(_parse_first_json_blob(result.output)["error"]["code"], "CONFIG")

    def test_config_path(self):
        result = self.invoke(_fake_client(), ["--config-path"])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.strip(), str(Path(self._tmp.name) / "no_config.json"))


if __name__ == "__main__":
    unittest.main()
