import io
import json
import os
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from blockscan import cli

MARKET = "0x" + "ab" * 20


class TestCli(unittest.TestCase):
    def run_cli(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            cli.main(argv)
        return out.getvalue(), err.getvalue()

    @patch.dict(os.environ, {"RPC_URL": "http://fake"}, clear=True)
    @patch("blockscan.cli.BlockScanService")
    def test_resolve_block(self, service_cls):
        service_cls.return_value.resolve_block_by_timestamp.return_value = {"block_number": 42}
        out, _ = self.run_cli(["resolve-block", "--timestamp", "1700000000"])
        self.assertEqual(json.loads(out), {"block_number": 42})
        service_cls.return_value.resolve_block_by_timestamp.assert_called_once_with("1700000000")

    @patch.dict(os.environ, {"RPC_URL": "http://fake"}, clear=True)
    @patch("blockscan.cli.BlockScanService")
    def test_scan_report_with_contracts(self, service_cls):
        service = service_cls.return_value
        service.scan_report.return_value = "REPORT"
        out, _ = self.run_cli(
            ["scan", "--start-block", "100", "--max-blocks", "5", "--contract", f"M={MARKET}"]
        )
        self.assertEqual(out.strip(), "REPORT")
        service.scan_report.assert_called_once_with(
            "100", {"M": MARKET}, max_blocks=5, workers=None, network=None
        )

    @patch.dict(os.environ, {"RPC_URL": "http://fake"}, clear=True)
    @patch("blockscan.cli.BlockScanService")
    def test_scan_since_as_json(self, service_cls):
        service = service_cls.return_value
        service.resolve_block_by_timestamp.return_value = {"block_number": 7}
        service.scan_related_transactions.return_value = {"total": 0}
        out, _ = self.run_cli(["scan", "--since", "1700000000", "--json"])
        self.assertEqual(json.loads(out), {"total": 0, "resolved": {"block_number": 7}})
        service.scan_related_transactions.assert_called_once_with(
            7, None, max_blocks=None, workers=None, network=None
        )

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_rpc_url_exits_with_error(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_cli(["get-network"])
        self.assertEqual(ctx.exception.code, 1)

    @patch.dict(os.environ, {"RPC_URL": "http://fake"}, clear=True)
    def test_list_markets_needs_no_network_access(self):
        out, _ = self.run_cli(["list-markets"])
        self.assertIn("MON_USDC", json.loads(out)["markets"])


if __name__ == "__main__":
    unittest.main()
