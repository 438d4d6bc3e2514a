from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic, is_hex_address, to_checksum_address
from web3.exceptions import LogTopicError, MismatchedABI


class LogDecodeError(Exception):
    pass


def _format_value(value):
    if isinstance(value, str):
        if is_hex_address(value):
            return to_checksum_address(value)
        return repr(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    return str(value)


class Event:
    """A decoded contract event.

    Two events are the same if their string forms are: the event name, then
    each field sorted by name, with addresses checksummed and integers in
    decimal. Whether a field came back as a checksummed address, or a value
    was built as a different integer type, does not matter.
    """

    def __init__(self, name, **fields):
        self.name = name
        self.fields = fields

    def __str__(self):
        args = ", ".join(f"{k}={_format_value(v)}" for k, v in sorted(self.fields.items()))
        return f"{self.name}({args})"

    __repr__ = __str__

    def __eq__(self, other):
        if not isinstance(other, Event):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self):
        return hash(str(self))


def generate_topic_event_map(abi):
    return {
        event_abi_to_log_topic(e): e
        for e in abi
        if e.get('type') == 'event' and not e.get('anonymous', False)
    }


class ContractLogParser:
    """Decodes the logs emitted by one deployed contract into Events."""

    def __init__(self, contract):
        self.contract = contract
        self.event_map = generate_topic_event_map(contract.abi)

    def parse_log(self, log):
        topics = log['topics']
        if not topics:
            raise LogDecodeError("log has no topics")
        event_abi = self.event_map.get(bytes(topics[0]))
        if event_abi is None:
            raise LogDecodeError(f"unknown event topic 0x{bytes(topics[0]).hex()}")
        try:
            event_data = getattr(self.contract.events, event_abi['name'])().process_log(log)
        except (MismatchedABI, LogTopicError, DecodingError) as e:
            raise LogDecodeError(str(e)) from e
        return Event(event_data['event'], **event_data['args'])
