from eth_snapshot_monitor.utils.token_parser import TokenParser

from conftest import ALICE, BOB, TOKEN


def _topic(address: str) -> str:
    return '0x' + '0' * 24 + address[2:]


def _transfer_log(value: int, sender: str = ALICE, to: str = BOB) -> dict:
    return {
        'address': TOKEN,
        'topics': [TokenParser.TRANSFER_EVENT_TOPIC, _topic(sender), _topic(to)],
        'data': '0x' + f"{value:064x}",
    }


def test_decodes_erc20_transfer():
    transfer = TokenParser().parse_transfer_log(_transfer_log(2_500_000_000_000_000_000))

    assert transfer == {
        'type': 'ERC20',
        'tokenAddress': TOKEN,
        'from': ALICE,
        'to': BOB,
        'value': '2500000000000000000',
        'valueFormatted': '2.500000',
    }


def test_addresses_are_lower_20_bytes_of_topics():
    log = _transfer_log(1)
    log['topics'][1] = '0x' + 'ff' * 12 + 'AB' * 20
    transfer = TokenParser().parse_transfer_log(log)
    assert transfer['from'] == '0x' + 'ab' * 20


def test_value_formatted_rounds_to_six_decimals():
    transfer = TokenParser().parse_transfer_log(_transfer_log(1_234_567_890_123))
    assert transfer['valueFormatted'] == '0.000001'


def test_ignores_other_events():
    log = _transfer_log(1)
    log['topics'][0] = '0x' + '12' * 32
    assert TokenParser().parse_transfer_log(log) is None


def test_ignores_logs_without_indexed_addresses():
    log = _transfer_log(1)
    log['topics'] = log['topics'][:1]
    assert TokenParser().parse_transfer_log(log) is None


def test_parse_receipt_logs_skips_unparseable_entries():
    good = _transfer_log(10 ** 18)
    bad = _transfer_log(1)
    bad['topics'][2] = '0x1234'
    other = {'address': TOKEN, 'topics': [], 'data': '0x'}

    transfers = TokenParser().parse_receipt_logs([good, bad, other])

    assert len(transfers) == 1
    assert transfers[0]['valueFormatted'] == '1.000000'
