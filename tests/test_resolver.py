import random
import unittest

from blockscan.cache import BlockCache
from blockscan.resolver import resolve_block_by_timestamp

from fake_chain import FakeChain


def closest_distance(chain: FakeChain, target: int) -> int:
    return min(abs(ts - target) for ts in chain.timestamps.values())


class TestResolveBlockByTimestamp(unittest.TestCase):
    def test_distance_tie_goes_to_lower_block(self):
        # Block n has timestamp 10 * n, so 100..110 map to 1000..1100.
        chain = FakeChain.linear(111)
        self.assertEqual(resolve_block_by_timestamp(chain, 1055), 105)

    def test_nearest_block_on_either_side(self):
        chain = FakeChain.linear(111)
        self.assertEqual(resolve_block_by_timestamp(chain, 1052), 105)
        self.assertEqual(resolve_block_by_timestamp(chain, 1058), 106)

    def test_exact_match(self):
        chain = FakeChain.linear(111)
        self.assertEqual(resolve_block_by_timestamp(chain, 1070), 107)

    def test_shared_timestamp_returns_earliest(self):
        timestamps = {n: 5000 - (200 - n) * 2 for n in range(200)}
        timestamps[200] = 5000
        timestamps[201] = 5000
        chain = FakeChain(timestamps)
        self.assertEqual(resolve_block_by_timestamp(chain, 5000), 200)

    def test_wide_tie_in_the_middle(self):
        timestamps = {}
        for n in range(51):
            if n < 20:
                timestamps[n] = n * 10
            elif n <= 25:
                timestamps[n] = 500
            else:
                timestamps[n] = 500 + (n - 25) * 10
        chain = FakeChain(timestamps)
        self.assertEqual(resolve_block_by_timestamp(chain, 500), 20)

    def test_closest_match_on_irregular_chain(self):
        rng = random.Random(7)
        timestamps = {}
        ts = 1_000
        for n in range(300):
            timestamps[n] = ts
            ts += rng.choice([0, 1, 1, 2, 2, 5, 12])
        chain = FakeChain(timestamps)

        for target in range(timestamps[0], timestamps[299] + 1):
            number = resolve_block_by_timestamp(chain, target)
            self.assertTrue(0 <= number <= 299)
            self.assertEqual(
                abs(timestamps[number] - target),
                closest_distance(chain, target),
                f"Failed at target {target}",
            )
            if target in timestamps.values():
                earliest = min(n for n, t in timestamps.items() if t == target)
                self.assertEqual(number, earliest, f"Failed at target {target}")

    def test_lower_bound_is_widened_when_estimate_overshoots(self):
        # Ten blocks per second, while the resolver assumes three.
        chain = FakeChain({n: n // 10 for n in range(200)})
        self.assertEqual(resolve_block_by_timestamp(chain, 0), 0)
        self.assertEqual(resolve_block_by_timestamp(chain, 4), 40)

    def test_results_stay_within_chain(self):
        chain = FakeChain.linear(50, start_time=1_000)
        self.assertEqual(resolve_block_by_timestamp(chain, 10), 0)
        self.assertEqual(resolve_block_by_timestamp(chain, 999_999), 49)

    def test_single_block_chain(self):
        chain = FakeChain({0: 100})
        for target in (50, 100, 500):
            self.assertEqual(resolve_block_by_timestamp(chain, target), 0)

    def test_latest_fetched_once_and_blocks_memoized(self):
        chain = FakeChain.linear(1_000)
        cache = BlockCache(chain)
        resolve_block_by_timestamp(chain, 4_321, cache=cache)
        self.assertEqual(chain.block_calls.count("latest"), 1)
        self.assertEqual(len(chain.block_calls), len(set(chain.block_calls)))
        self.assertEqual(cache.fetch_count, len(chain.block_calls))
        # log2(1000) narrowing steps plus latest and the two final candidates.
        self.assertLessEqual(cache.fetch_count, 14)

    def test_gateway_failure_propagates(self):
        class BrokenChain(FakeChain):
            def get_block(self, block):
                if block != "latest":
                    raise ConnectionError("node unavailable")
                return super().get_block(block)

        with self.assertRaises(ConnectionError):
            resolve_block_by_timestamp(BrokenChain.linear(10), 35)

    def test_rejects_non_integer_target(self):
        chain = FakeChain.linear(10)
        with self.assertRaises(ValueError):
            resolve_block_by_timestamp(chain, "35")
        with self.assertRaises(ValueError):
            resolve_block_by_timestamp(chain, 35, blocks_per_second=0)


class TestBlockCache(unittest.TestCase):
    def test_repeat_lookup_is_free(self):
        chain = FakeChain.linear(10)
        cache = BlockCache(chain)
        first = cache.get(3)
        second = cache.get(3)
        self.assertIs(first, second)
        self.assertEqual(cache.fetch_count, 1)
        self.assertEqual(chain.block_calls, [3])
        self.assertIn(3, cache)

    def test_latest_snapshot_is_pinned(self):
        chain = FakeChain.linear(10)
        cache = BlockCache(chain)
        self.assertEqual(cache.get("latest").number, 9)
        chain.timestamps[10] = 100
        self.assertEqual(cache.get("latest").number, 9)
        self.assertEqual(cache.fetch_count, 1)

    def test_failed_fetch_is_not_cached(self):
        chain = FakeChain.linear(3)
        cache = BlockCache(chain)
        with self.assertRaises(ValueError):
            cache.get(7)
        self.assertNotIn(7, cache)
        self.assertEqual(len(cache), 0)


if __name__ == "__main__":
    unittest.main()
