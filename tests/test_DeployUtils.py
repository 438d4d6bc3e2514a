import contextlib
import io
import os
import tempfile
import unittest

from harness import deployutils, generalutils
from harness.accounts import TEST_KEYS, load_accounts
from harness.deployutils import attempt, gas_table, record_gas
from harness.generalutils import (
    MAX_UINT160, MIN_INT160_AS_UINT160, ZERO_ADDRESS, int_to_address, shift_right, to_seconds
)


def setUpModule():
    print("Testing DeployUtils...")


def tearDownModule():
    print()


class TestGasTable(unittest.TestCase):
    def setUp(self):
        self.saved = dict(deployutils.PERFORMANCE_DATA)
        deployutils.PERFORMANCE_DATA.clear()

    def tearDown(self):
        deployutils.PERFORMANCE_DATA.clear()
        deployutils.PERFORMANCE_DATA.update(self.saved)

    def test_record_gas(self):
        record_gas("Reserve", "mint", 100)
        record_gas("Reserve", "mint", 300)
        record_gas("Reserve", "pause", 50)
        self.assertEqual(deployutils.PERFORMANCE_DATA["Reserve"]["mint"], [400, 2, 100, 300])
        self.assertEqual(deployutils.PERFORMANCE_DATA["Reserve"]["pause"], [50, 1, 50, 50])

    def test_empty_table(self):
        self.assertEqual(gas_table(), [])

    def test_table_rows(self):
        record_gas("Reserve", "mint", 100)
        record_gas("Reserve", "mint", 301)
        record_gas("ReserveEternalStorage", "constructor", 900000)
        lines = gas_table()

        self.assertTrue(lines[0].startswith('┌'))
        self.assertTrue(lines[-1].startswith('└'))
        self.assertEqual(len({len(line) for line in lines if line[0] in '┌├└'}), 1)

        header = lines[1]
        for title in ('CONTRACT', 'METHOD', 'AVG_GAS', 'MIN_GAS', 'MAX_GAS', 'CALLS'):
            self.assertIn(title, header)

        mint = next(line for line in lines if ' mint ' in line)
        self.assertEqual(mint.replace('│', ' ').split(), ['Reserve', 'mint', '200', '100', '301', '2'])

        # Contracts are listed alphabetically after the header.
        names = [line.split('│')[1].strip() for line in lines if line.startswith('│')]
        self.assertEqual(names, ['CONTRACT', 'Reserve', 'ReserveEternalStorage'])


class TestAttempt(unittest.TestCase):
    def test_returns_result(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            self.assertEqual(attempt(lambda a, b=0: a + b, [1], "Adding... ", func_kwargs={'b': 2}), 3)
        self.assertIn("Done!", out.getvalue())

    def test_reraises(self):
        def fail():
            raise ValueError("bad constructor arguments")

        out = io.StringIO()
        with contextlib.redirect_stdout(out), self.assertRaises(ValueError):
            attempt(fail, [], "Deploying Reserve... ")
        self.assertIn("Failed.", out.getvalue())
        self.assertIn("bad constructor arguments", out.getvalue())

    def test_quiet(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            attempt(lambda: None, [], "Quiet... ", print_status=False)
        self.assertEqual(out.getvalue(), "")


class TestGeneralUtils(unittest.TestCase):
    def test_to_seconds(self):
        self.assertEqual(to_seconds(days=40), 40 * 24 * 60 * 60)
        self.assertEqual(to_seconds(seconds=1, minutes=1, hours=1, weeks=1), 1 + 60 + 3600 + 604800)

    def test_shift_right(self):
        self.assertEqual(shift_right(1, 18), 10**18)
        self.assertEqual(shift_right(25, 0), 25)

    def test_int_to_address(self):
        self.assertEqual(int_to_address(0), ZERO_ADDRESS)
        self.assertEqual(int_to_address(MAX_UINT160).lower(), "0x" + "f" * 40)
        self.assertEqual(int_to_address(MIN_INT160_AS_UINT160).lower(), "0x8" + "0" * 39)
        self.assertEqual(int_to_address(100).lower(), "0x" + "0" * 38 + "64")

    def test_test_settings(self):
        cwd = os.getcwd()
        with tempfile.TemporaryDirectory() as directory:
            os.chdir(directory)
            try:
                os.mkdir(generalutils.TEST_DIRECTORY)
                for name in ("test_Reserve.py", "test_Events.py", "helpers.py"):
                    with open(os.path.join(generalutils.TEST_DIRECTORY, name), 'w'):
                        pass
                self.assertEqual(generalutils.generate_default_test_settings(),
                                 {'test_Events': True, 'test_Reserve': True})

                generalutils.refresh_test_settings()
                with open(generalutils.TEST_SETTINGS_FILE) as f:
                    contents = f.read()
                self.assertIn("'test_Events': True,", contents)
                self.assertIn("'test_Reserve': True,", contents)
            finally:
                os.chdir(cwd)


class TestAccounts(unittest.TestCase):
    def test_load_accounts(self):
        accounts = load_accounts()
        self.assertEqual(len(accounts), len(TEST_KEYS))
        self.assertEqual(accounts[0].address.lower(), "0x5409ed021d9299bf6814279a6a1411a7e866a631")
        self.assertEqual(len({a.address for a in accounts}), len(accounts))

    def test_load_subset(self):
        accounts = load_accounts(TEST_KEYS[:2])
        self.assertEqual(len(accounts), 2)
