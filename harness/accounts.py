from eth_account import Account

# The first few keys from the well-known 0x devnet mnemonic:
#   concert load couple harbor equip island argue ramp clarify fence smart topic
TEST_KEYS = [
    "f2f48ee19680706196e2e339e5da3491186e0c4c5030670656b0e0164837257d",
    "5d862464fe9303452126c8bc94274b8c5f9874cbd219789b3eb2128075a76f72",
    "df02719c4df8b9b8ac7f551fcb5d9ef48fa27eef7a66453879f4d8fdc6e78fb1",
    "ff12e391b79415e941a94de3bf3a9aee577aed0731e297d5cfa0b8a1e02fa1d0",
    "752dd9cf65e68cfaba7d60225cbdbc1f4729dd5e5507def72815ed0d8abc6249",
    "efb595a0178eb79a8df953f87c5148402a224cdf725e88c0146727c6aceadccd",
]


def load_accounts(keys=None):
    """Derive a signing account for each private key.

    The returned accounts sign transactions locally, so they work the same
    against the in-process node and an external one.
    """
    if keys is None:
        keys = TEST_KEYS
    return [Account.from_key("0x" + key.removeprefix("0x")) for key in keys]
