from harness.deployutils import send_transaction
from harness.events import ContractLogParser


class ContractInterface(ContractLogParser):
    """A deployed contract: typed views, mutators returning Submissions, and log parsing."""

    def __init__(self, contract, name, node):
        ContractLogParser.__init__(self, contract)
        self.contract_name = name
        self.node = node
        self.address = contract.address

    def _send(self, sender, method, *args):
        fn = getattr(self.contract.functions, method)(*args)
        return send_transaction(self.node, fn, sender, self.contract_name, method)
