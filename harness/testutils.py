import unittest

from harness.deployutils import (
    GasEstimationFailed, attempt, compile_contracts, deploy_util_contract, record_gas, send_deployment
)
from harness.events import LogDecodeError
from harness.nodes import get_node

RECEIPT_STATUS_FAILED = 0
RECEIPT_STATUS_SUCCESSFUL = 1


class TxAssertions:
    """Assertions over submitted transactions and the ledger state they leave.

    Mix into a unittest.TestCase that provides `node` and `log_parsers`, a
    mapping from contract address to an object with `parse_log(log) -> Event`.

    `requireTx` and `requireTxWithStrictEvents` take the Submission returned
    by a contract mutator, so calls can be wrapped directly:

        self.requireTx(self.reserve.mint(self.signer, recipient, 100))(
            minting_transfer(recipient, 100),
        )

    They check that the transaction was mined successfully straight away and
    return a function that checks the events it emitted. The receipt is
    available as the `receipt` attribute of that function.
    """

    node = None
    log_parsers = None

    def requireTxWithStrictEvents(self, submission):
        """Require success; the returned check asserts exactly these events, in order."""
        receipt = self._requireTxStatus(submission, RECEIPT_STATUS_SUCCESSFUL)
        logs = receipt['logs']

        def check(*expected):
            self.assertEqual(len(expected), len(logs), "did not get the expected number of events")
            for i, want in enumerate(expected):
                address = logs[i]['address']
                parser = self.log_parsers.get(address)
                self.assertIsNotNone(parser, f"got an event from an unexpected contract address: {address}")
                try:
                    got = parser.parse_log(logs[i])
                except LogDecodeError as e:
                    self.fail(f"parsing event {i}: {e}")
                self.assertEqual(str(want), str(got))

        check.receipt = receipt
        return check

    def requireTx(self, submission):
        """Require success; the returned check asserts that each event appears somewhere.

        Other events may be emitted too, and one emitted event satisfies any
        number of identical expected events.
        """
        receipt = self._requireTxStatus(submission, RECEIPT_STATUS_SUCCESSFUL)
        logs = receipt['logs']

        def check(*expected):
            for want in expected:
                found = False
                for log in logs:
                    parser = self.log_parsers.get(log['address'])
                    if parser is None:
                        continue
                    try:
                        got = parser.parse_log(log)
                    except LogDecodeError:
                        continue
                    if str(want) == str(got):
                        found = True
                self.assertTrue(found, f"event not found: {want}")

        check.receipt = receipt
        return check

    def requireTxFails(self, submission):
        """Require that the transaction reverts, or is refused because it always would."""
        if isinstance(submission.error, GasEstimationFailed):
            return

        receipt = self._requireTxStatus(submission, RECEIPT_STATUS_FAILED)
        self.assertEqual(0, len(receipt['logs']), "Zero logs should be generated for a failed transaction")

    def _requireTxStatus(self, submission, status):
        label = f"{submission.contract_name}.{submission.method}"
        self.assertIsNone(submission.error, f"{label}: {submission.error}")
        self.assertIsNotNone(submission.tx_hash, f"{label}: no transaction was submitted")
        receipt = self.node.wait_mined(submission.tx_hash)
        record_gas(submission.contract_name, submission.method, receipt['gasUsed'])
        self.assertEqual(status, receipt['status'], f"{label}: unexpected receipt status")
        return receipt

    def assertBalance(self, address, amount, token=None):
        """Assert that the token balance of `address` is `amount`."""
        if token is None:
            token = self.reserve
        self.assertEqual(str(amount), str(token.balanceOf(address)))

    def assertAllowance(self, owner, spender, amount, token=None):
        """Assert that `owner` allows `spender` to move `amount` of its tokens."""
        if token is None:
            token = self.reserve
        self.assertEqual(str(amount), str(token.allowance(owner, spender)))

    def assertTotalSupply(self, amount, token=None):
        if token is None:
            token = self.reserve
        self.assertEqual(str(amount), str(token.totalSupply()))

    def assertCollateralized(self, manager):
        self.assertTrue(manager.isFullyCollateralized())

    def assertBasket(self, basket, tokens, weights):
        """Assert the basket holds exactly `tokens`, in order, with the matching `weights`."""
        basket_tokens = basket.getTokens()
        self.assertEqual(len(tokens), len(basket_tokens))
        for token, basket_token, weight in zip(tokens, basket_tokens, weights):
            self.assertEqual(token, basket_token)
            self.assertEqual(str(weight), str(basket.weights(token)))


class HarnessTestCase(TxAssertions, unittest.TestCase):
    """Test case bound to the node shared by the whole run."""

    @classmethod
    def setUpClass(cls):
        cls.node = get_node()
        cls.account = cls.node.accounts
        cls.signer = cls.account[0]
        cls.util_contract = attempt(deploy_util_contract, [cls.node, cls.signer], "Deploying time utility... ")

    def setUp(self):
        self.log_parsers = {}

    @classmethod
    def compileContracts(cls, source_paths, remappings=None):
        return attempt(compile_contracts, [source_paths], "Compiling contracts...",
                       func_kwargs={'remappings': remappings})

    def deployContract(self, compiled, contract_name, sender, constructor_args=()):
        contract_interface = compiled[contract_name]
        check = self.requireTx(send_deployment(
            self.node, contract_interface['abi'], contract_interface['bin'], sender,
            constructor_args, contract_name
        ))
        check()
        contract = self.node.w3.eth.contract(address=check.receipt['contractAddress'],
                                             abi=contract_interface['abi'])
        return contract, check.receipt

    def currentTimestamp(self):
        return self.util_contract.functions.time().call()
