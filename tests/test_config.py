import os
import unittest
from unittest.mock import patch

from blockscan.config import load_config


class TestLoadConfig(unittest.TestCase):
    @patch.dict(os.environ, {"RPC_URL": "https://rpc.example"}, clear=True)
    def test_defaults(self):
        config = load_config()
        self.assertEqual(config.rpc_url, "https://rpc.example")
        self.assertEqual(config.network, "testnet")
        self.assertEqual(config.blocks_per_second, 3)
        self.assertEqual(config.max_scan_blocks, 400)
        self.assertEqual(config.scan_workers, 1)
        self.assertEqual(config.progress_interval, 10)
        self.assertEqual(config.log_level, "INFO")

    @patch.dict(
        os.environ,
        {
            "RPC_URL": " https://rpc.example ",
            "NETWORK": "Monad-Testnet",
            "REQUEST_TIMEOUT": "30",
            "REQUEST_RETRIES": "5",
            "REQUEST_BACKOFF_SECONDS": "1.5",
            "BLOCKS_PER_SECOND": "5",
            "MAX_SCAN_BLOCKS": "1000",
            "SCAN_WORKERS": "8",
            "PROGRESS_INTERVAL": "50",
            "LOG_LEVEL": "debug",
        },
        clear=True,
    )
    def test_overrides(self):
        config = load_config()
        self.assertEqual(config.rpc_url, "https://rpc.example")
        self.assertEqual(config.network, "monad-testnet")
        self.assertEqual(config.request_timeout, 30)
        self.assertEqual(config.max_retries, 5)
        self.assertEqual(config.backoff_seconds, 1.5)
        self.assertEqual(config.blocks_per_second, 5)
        self.assertEqual(config.max_scan_blocks, 1000)
        self.assertEqual(config.scan_workers, 8)
        self.assertEqual(config.progress_interval, 50)
        self.assertEqual(config.log_level, "DEBUG")

    @patch.dict(os.environ, {}, clear=True)
    def test_rpc_url_required(self):
        with self.assertRaisesRegex(ValueError, "RPC_URL"):
            load_config()

    @patch.dict(os.environ, {"RPC_URL": "https://rpc.example", "SCAN_WORKERS": "0"}, clear=True)
    def test_rejects_non_positive_workers(self):
        with self.assertRaisesRegex(ValueError, "SCAN_WORKERS"):
            load_config()

    @patch.dict(os.environ, {"RPC_URL": "https://rpc.example", "BLOCKS_PER_SECOND": "fast"}, clear=True)
    def test_rejects_non_integer(self):
        with self.assertRaisesRegex(ValueError, "BLOCKS_PER_SECOND"):
            load_config()


if __name__ == "__main__":
    unittest.main()
