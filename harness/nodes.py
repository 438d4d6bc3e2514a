import os
import subprocess
import sys
import time

from eth_tester import EthereumTester, PyEVMBackend
from eth_tester.exceptions import TransactionFailed
from web3 import Web3, HTTPProvider
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception
from web3.providers.eth_tester import EthereumTesterProvider

from harness.accounts import load_accounts
from harness.generalutils import (
    ETHER, TERMCOLORS, coverage_error_message, coverage_node_message
)

BLOCKCHAIN_ADDRESS = os.environ.get("BLOCKCHAIN_ADDRESS", "http://localhost:8545")
COVERAGE_ENABLED = os.environ.get("COVERAGE_ENABLED", "") != ""
COVERAGE_FILE = "coverage/coverage.json"
COVERAGE_EXPORT_METHOD = "coverage_write"
COVERAGE_REPORT_COMMAND = ["npx", "istanbul", "report", "html"]
POLLING_INTERVAL = 0.1

# Amount each test account is funded with on the in-process node.
FUNDING = 1000 * ETHER


class TimeTravelUnsupported(Exception):
    pass


class CoverageExportError(Exception):
    pass


class Node:
    """A connection to a ledger that the harness submits transactions to."""

    supports_time_travel = False
    estimation_errors = (ContractLogicError,)

    def __init__(self, w3, accounts):
        self.w3 = w3
        self.accounts = accounts

    def nonce(self, address):
        return self.w3.eth.get_transaction_count(address, 'pending')

    def send_transaction(self, signed):
        return self.w3.eth.send_raw_transaction(signed.raw_transaction)

    def wait_mined(self, tx_hash):
        # No timeout: a node that never mines the transaction blocks forever.
        while True:
            try:
                return self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                time.sleep(POLLING_INTERVAL)

    def adjust_time(self, seconds):
        raise TimeTravelUnsupported(f"{type(self).__name__} cannot advance chain time")

    def close(self):
        pass


class FastNode(Node):
    """In-process py-evm chain. Every submitted transaction is mined immediately."""

    supports_time_travel = True
    estimation_errors = (ContractLogicError, TransactionFailed)

    def __init__(self, accounts, funding=FUNDING):
        self.tester = EthereumTester(PyEVMBackend())
        self.tester.enable_auto_mine_transactions()
        super().__init__(Web3(EthereumTesterProvider(self.tester)), accounts)

        faucet = self.tester.get_accounts()[0]
        for account in accounts:
            self.wait_mined(self.w3.eth.send_transaction(
                {'from': faucet, 'to': account.address, 'value': funding}
            ))

    def adjust_time(self, seconds):
        """Mine a block at least `seconds` after the latest one."""
        if seconds < 0:
            raise ValueError("chain time cannot move backwards")
        target = self.w3.eth.get_block('latest')['timestamp'] + seconds
        pending = self.tester.get_block_by_number('pending')['timestamp']
        # time_travel mines its block one second before the target.
        if target > pending:
            self.tester.time_travel(target)
        self.tester.mine_blocks()


class CoverageNode(Node):
    """A node in another process whose EVM execution is instrumented for coverage.

    Much slower than FastNode, and chain time cannot be moved.
    """

    def __init__(self, accounts, address=BLOCKCHAIN_ADDRESS):
        print(coverage_node_message, file=sys.stderr)
        w3 = Web3(HTTPProvider(address))
        if not w3.is_connected():
            raise ConnectionError(f"Could not connect to a node at {address}")
        super().__init__(w3, accounts)
        self.address = address
        self._advance_fork_schedule()

    def _advance_fork_schedule(self):
        # Freshly initialised dev chains move through the historical hard forks
        # over their first few blocks. A throwaway transaction with a
        # Homestead-style (no chain id) signature pushes the chain past them.
        # It is rejected when it is not the first transaction on the chain.
        signed = self.accounts[0].sign_transaction({
            'nonce': 0,
            'to': "0x64" + "00" * 19,
            'value': 0,
            'gas': 21000,
            'gasPrice': 1,
            'data': b'',
        })
        try:
            self.send_transaction(signed)
        except (ValueError, Web3Exception) as e:
            print(f"Skipped fork schedule transaction: {e}", file=sys.stderr)

    def write_coverage(self, path=COVERAGE_FILE):
        response = self.w3.provider.make_request(COVERAGE_EXPORT_METHOD, [path])
        if 'error' in response:
            raise CoverageExportError(response['error'])
        return path


def create_node(accounts):
    if COVERAGE_ENABLED:
        return CoverageNode(accounts)
    return FastNode(accounts)


_node = None


def get_node():
    """Return the node shared by every test in this process."""
    global _node
    if _node is None:
        _node = create_node(load_accounts())
    return _node


def close_node():
    global _node
    if _node is None:
        return
    node, _node = _node, None
    if not isinstance(node, CoverageNode):
        node.close()
        return

    try:
        node.write_coverage()
    except CoverageExportError as e:
        print(f"{TERMCOLORS.RED}Failed to write coverage: {e}{TERMCOLORS.RESET}", file=sys.stderr)
        node.close()
        return
    node.close()
    generate_coverage_report()


def generate_coverage_report(command=None):
    """Turn the coverage profile into an HTML report. Failures are only reported."""
    if command is None:
        command = COVERAGE_REPORT_COMMAND
    try:
        result = subprocess.run(command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except OSError as e:
        print(coverage_error_message, file=sys.stderr)
        print(f"The error running {command[0]} was: {e}", file=sys.stderr)
        return False
    if result.returncode != 0:
        print(coverage_error_message, file=sys.stderr)
        print(f"{command[0]} exited with status {result.returncode}. Its output was:", file=sys.stderr)
        print(result.stdout.decode(errors='replace'), file=sys.stderr)
        return False
    return True
