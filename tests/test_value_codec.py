import pytest

from eth_snapshot_monitor.utils.value_codec import (
    format_ether,
    format_gwei,
    hex_to_bigint,
    hex_to_int,
    parse_block_number,
    to_hex_block,
)


def test_hex_to_int():
    assert hex_to_int('0x10') == 16
    assert hex_to_int('0x0') == 0
    assert hex_to_int(None, 0) == 0


def test_hex_to_int_missing_without_default():
    with pytest.raises(ValueError):
        hex_to_int(None)


def test_hex_to_bigint_handles_large_and_empty_values():
    assert hex_to_bigint('0x' + 'f' * 64) == 2 ** 256 - 1
    assert hex_to_bigint('0x') == 0


def test_format_ether_one_ether():
    assert format_ether('0xDE0B6B3A7640000') == '1.000000'


def test_format_ether_zero_and_fraction():
    assert format_ether('0x0') == '0.000000'
    assert format_ether(hex(1_500_000_000_000_000)) == '0.001500'


def test_format_gwei():
    assert format_gwei('0x2540BE400') == '10.00'
    assert format_gwei('0x4A817C800') == '20.00'
    assert format_gwei(hex(1_234_567_890)) == '1.23'


def test_malformed_hex_raises():
    with pytest.raises(ValueError):
        format_ether('0xnothex')
    with pytest.raises(ValueError):
        hex_to_int('zz')


def test_parse_block_number_accepts_decimal_and_hex():
    assert parse_block_number('1000') == '0x3e8'
    assert parse_block_number('0x3e8') == '0x3e8'
    assert parse_block_number('0X3E8') == '0x3e8'


@pytest.mark.parametrize('raw', ['abc', '-5', '', '12.5'])
def test_parse_block_number_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_block_number(raw)


def test_to_hex_block_rejects_negative():
    with pytest.raises(ValueError):
        to_hex_block(-1)
