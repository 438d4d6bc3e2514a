import glob
import os

from eth_utils import to_checksum_address


class TERMCOLORS:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    RESET = '\033[0m'


ZERO_ADDRESS = "0x" + "0" * 40

# The number representing 1 in the token contracts.
UNIT = 10**18

# The number of wei per ether.
ETHER = 10**18

MAX_UINT256 = 2**256 - 1
MAX_UINT160 = 2**160 - 1
# The most negative int160, reinterpreted as a uint160.
MIN_INT160_AS_UINT160 = 2**159


def to_seconds(seconds=0, minutes=0, hours=0, days=0, weeks=0):
    total_time = seconds
    mult = 60
    total_time += minutes * mult
    mult *= 60
    total_time += hours * mult
    mult *= 24
    total_time += days * mult
    mult *= 7
    total_time += weeks * mult
    return total_time


def shift_right(n, decimals):
    """Scale a whole number of tokens up to its smallest unit."""
    return n * 10**decimals


def int_to_address(n):
    """Left-pad an integer into a 20-byte hex address."""
    return to_checksum_address("0x" + format(n, "040x"))


coverage_error_message = f"""{TERMCOLORS.RED}
Coverage information was written to coverage/coverage.json.
Turning it into a readable report with `istanbul` failed.
If it is missing, it can be installed with `npm install -g istanbul`.{TERMCOLORS.RESET}
"""

coverage_node_message = """
A local node must be running for coverage to work.
If one is not already running, start one in a new terminal with:

\tmake run-geth
"""

TEST_SETTINGS_FILE = "test_settings.py"
TEST_DIRECTORY = "tests"


def generate_default_test_settings():
    pattern = os.path.join(TEST_DIRECTORY, "test_*.py")
    return {
        os.path.splitext(os.path.basename(path))[0]: True for path in sorted(glob.glob(pattern))
    }


def refresh_test_settings():
    default_test_settings = generate_default_test_settings()
    with open(TEST_SETTINGS_FILE, 'w') as f:
        f.write("run_test = {\n")
        for test_name in default_test_settings:
            f.write(f"    '{test_name}': True,\n")
        f.write('}\n')


def load_test_settings():
    default_test_settings = generate_default_test_settings()
    try:
        from test_settings import run_test as r
        for item in default_test_settings:
            if item not in r:
                raise ImportError
        return r
    except ImportError:
        refresh_test_settings()
        return default_test_settings
