#!/usr/local/bin/python3

import importlib
import sys
from unittest import TestSuite, TestLoader, TextTestRunner

from harness.deployutils import gas_table
from harness.generalutils import TEST_DIRECTORY, load_test_settings
from harness.nodes import close_node

if __name__ == '__main__':
    test_settings = load_test_settings()

    test_suite = TestSuite()
    loader = TestLoader()
    for item in test_settings:
        if test_settings[item]:
            module = importlib.import_module(f"{TEST_DIRECTORY}.{item}")
            test_suite.addTests(loader.loadTestsFromModule(module))

    print("Running test suite...\n")
    result = TextTestRunner(verbosity=2).run(test_suite)

    lines = gas_table()
    if lines:
        print("\nGas performance data")
        print("\n".join(lines))

    close_node()

    print("\nTesting complete.")

    sys.exit(0 if result.wasSuccessful() else 1)
