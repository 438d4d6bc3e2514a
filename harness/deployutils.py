import json
import os
from collections import namedtuple

from solcx import compile_files, install_solc
from web3.exceptions import Web3Exception

from harness.generalutils import TERMCOLORS

SOLC_VERSION = os.environ.get("SOLC_VERSION")
STATUS_ALIGN_SPACING = 6
DEFAULT_GAS = 8000000

# How nodes word a gas estimation that found the transaction always fails.
ESTIMATION_FAILURE_MESSAGE = "always failing transaction"

# Minimal contract used only to read the timestamp the chain gives to calls.
#   function time() public view returns (uint256) { return now; }
UTIL_BYTECODE = (
    "0x6080604052348015600f57600080fd5b5060918061001e6000396000f3fe6080604052348015600f57600080fd5b50"
    "600436106044577c0100000000000000000000000000000000000000000000000000000000600035046316ada54781"
    "146049575b600080fd5b604f6061565b60408051918252519081900360200190f35b429056fea165627a7a7230582055"
    "24d6a0c4d80ea5535c2ea64615c2619a21518e242cb929275cbd678b04468f0029"
)
UTIL_ABI = json.loads("""
[{"constant":true,"inputs":[],"name":"time","outputs":[{"name":"","type":"uint256"}],
  "payable":false,"stateMutability":"view","type":"function"}]
""")

# The result of submitting a transaction: exactly one of tx_hash and error is set.
Submission = namedtuple('Submission', ['tx_hash', 'error', 'contract_name', 'method'])

# {contract_name: {method: [total_gas, calls, min_gas, max_gas]}}
PERFORMANCE_DATA = {}


class GasEstimationFailed(Exception):
    """The node refused the transaction up front because it would always fail."""

    def __init__(self, cause):
        super().__init__(f"failed to estimate gas needed: {cause}")
        self.cause = cause


class DeploymentFailed(Exception):
    pass


def attempt(function, func_args, init_string, func_kwargs=None, print_status=True, print_exception=True):
    if func_kwargs is None:
        func_kwargs = {}
    if print_status:
        print(init_string, end="", flush=True)

    pad = (STATUS_ALIGN_SPACING - len(init_string)) % STATUS_ALIGN_SPACING
    reset = TERMCOLORS.RESET
    try:
        result = function(*func_args, **func_kwargs)
        if print_status:
            print(f"{TERMCOLORS.GREEN}{' '*pad}Done!{reset}")
        return result
    except Exception as e:
        if print_status:
            print(f"{TERMCOLORS.RED}{' '*pad}Failed.{reset}")
        if print_exception:
            print(f"{TERMCOLORS.YELLOW}{TERMCOLORS.BOLD}ERROR:{reset} {TERMCOLORS.BOLD}{e}{reset}")
        raise


def compile_contracts(files, remappings=None):
    if remappings is None:
        remappings = []
    if SOLC_VERSION:
        install_solc(SOLC_VERSION)
    contract_interfaces = {}
    compiled = compile_files(
        files, output_values=["abi", "bin"], import_remappings=remappings,
        optimize=True, solc_version=SOLC_VERSION
    )
    for key in compiled:
        name = key.split(':')[-1]
        contract_interfaces[name] = compiled[key]
    return contract_interfaces


def send_transaction(node, fn, sender, contract_name, method, gas=None):
    """Build, sign and submit a contract call or constructor as `sender`.

    Errors are returned in the Submission rather than raised so that callers
    can decide whether a rejected transaction is a failure.
    """
    params = {'from': sender.address, 'nonce': node.nonce(sender.address)}
    if gas is not None:
        params['gas'] = gas
    try:
        tx = fn.build_transaction(params)
    except node.estimation_errors as e:
        return Submission(None, GasEstimationFailed(e), contract_name, method)
    except (ValueError, Web3Exception) as e:
        if ESTIMATION_FAILURE_MESSAGE in str(e):
            return Submission(None, GasEstimationFailed(e), contract_name, method)
        return Submission(None, e, contract_name, method)

    signed = sender.sign_transaction(tx)
    try:
        tx_hash = node.send_transaction(signed)
    except (ValueError, Web3Exception) as e:
        return Submission(None, e, contract_name, method)
    return Submission(tx_hash, None, contract_name, method)


def send_deployment(node, abi, bytecode, sender, constructor_args=(), contract_name="", gas=None):
    factory = node.w3.eth.contract(abi=abi, bytecode=bytecode)
    return send_transaction(node, factory.constructor(*constructor_args), sender,
                            contract_name, "constructor", gas=gas)


def deploy_contract(node, compiled_sol, contract_name, deploy_account, constructor_args=None, gas=DEFAULT_GAS):
    if constructor_args is None:
        constructor_args = []
    contract_interface = compiled_sol[contract_name]
    submission = send_deployment(
        node, contract_interface['abi'], contract_interface['bin'], deploy_account,
        constructor_args, contract_name, gas=gas
    )
    if submission.error is not None:
        raise DeploymentFailed(f"{contract_name}: {submission.error}")
    tx_receipt = node.wait_mined(submission.tx_hash)
    if tx_receipt['status'] != 1:
        raise DeploymentFailed(f"{contract_name}: constructor reverted")
    record_gas(contract_name, "constructor", tx_receipt['gasUsed'])
    contract_instance = node.w3.eth.contract(address=tx_receipt['contractAddress'], abi=contract_interface['abi'])
    return contract_instance, tx_receipt


def attempt_deploy(node, compiled_sol, contract_name, deploy_account, constructor_args, print_status=True,
                   print_exception=True):
    return attempt(
        deploy_contract, [node, compiled_sol, contract_name, deploy_account, constructor_args],
        f"Deploying {contract_name}... ", print_status=print_status, print_exception=print_exception
    )


def deploy_util_contract(node, deploy_account):
    compiled = {'Util': {'abi': UTIL_ABI, 'bin': UTIL_BYTECODE}}
    contract, _ = deploy_contract(node, compiled, 'Util', deploy_account, gas=None)
    return contract


def record_gas(contract_name, method, gas_used):
    methods = PERFORMANCE_DATA.setdefault(contract_name, {})
    if method not in methods:
        methods[method] = [gas_used, 1, gas_used, gas_used]
        return
    vals = methods[method]
    vals[0] += gas_used
    vals[1] += 1
    vals[2] = min(vals[2], gas_used)
    vals[3] = max(vals[3], gas_used)


def gas_table(performance_data=None):
    """Render gas usage as | CONTRACT | METHOD | AVG GAS | MIN GAS | MAX GAS | CALLS |."""
    if performance_data is None:
        performance_data = PERFORMANCE_DATA
    if not performance_data:
        return []

    # (avg, min, max, calls)
    data = {
        contract: {
            method: (vals[0] // vals[1], vals[2], vals[3], vals[1]) for method, vals in methods.items()
        }
        for contract, methods in performance_data.items()
    }
    data['CONTRACT'] = {'METHOD': ('AVG_GAS', 'MIN_GAS', 'MAX_GAS', 'CALLS')}
    num_fields = len(data['CONTRACT']['METHOD'])

    max_contract_name = max(len(i) for i in data)
    max_method_name = max(len(str(m)) for methods in data.values() for m in methods)
    max_gas_len = max(len(str(v)) for methods in data.values() for vals in methods.values() for v in vals)

    def rule(left, mid, right):
        return (left + '─'*(2 + max_contract_name) + mid + '─'*(2 + max_method_name) + mid +
                ('─'*(2 + max_gas_len) + mid)*(num_fields - 1) + '─'*(2 + max_gas_len) + right)

    lines = [rule('┌', '┬', '┐')]
    remaining = sorted(c for c in data if c != 'CONTRACT')
    current = 'CONTRACT'
    while True:
        for method in sorted(data[current].keys()):
            vals = data[current][method]
            lines.append(
                '│ ' + current + ' '*(1 + max_contract_name - len(current)) + '│ ' +
                str(method) + ' '*(1 + max_method_name - len(str(method))) + '│ ' +
                ''.join(str(i) + ' '*(1 + max_gas_len - len(str(i))) + '│ ' for i in vals).rstrip()
            )
        if not remaining:
            break
        lines.append(rule('├', '┼', '┤'))
        current = remaining.pop(0)
    lines.append(rule('└', '┴', '┘'))
    return lines
