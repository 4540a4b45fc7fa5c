"""
数值编解码工具

将 JSON-RPC 返回的十六进制整数转换为十进制和常用单位（ether、gwei）。
纯函数，无网络调用；格式不正确的输入直接抛出 ValueError。
"""

from typing import Optional

from web3 import Web3


def hex_to_int(value: Optional[str], default: Optional[int] = None) -> int:
    """十六进制字符串 -> 整数，value 为空时返回 default（未提供 default 则报错）"""
    if value is None:
        if default is None:
            raise ValueError("hex value is missing")
        return default
    if isinstance(value, int):
        return value
    return int(value, 16)


def hex_to_bigint(value: str) -> int:
    """十六进制字符串 -> 任意精度整数，'0x' 视为 0"""
    if isinstance(value, int):
        return value
    text = value.strip()
    if text in ('0x', '0X', ''):
        return 0
    return int(text, 16)


def format_ether(wei_hex: str) -> str:
    """wei（十六进制） -> ether，保留 6 位小数"""
    ether = Web3.from_wei(hex_to_bigint(wei_hex), 'ether')
    return f"{ether:.6f}"


def format_gwei(wei_hex: str) -> str:
    """wei（十六进制） -> gwei，保留 2 位小数"""
    gwei = Web3.from_wei(hex_to_bigint(wei_hex), 'gwei')
    return f"{gwei:.2f}"


def to_hex_block(block_number: int) -> str:
    """区块号 -> JSON-RPC 使用的十六进制区块标签"""
    if block_number < 0:
        raise ValueError(f"区块号不能为负数: {block_number}")
    return hex(block_number)


def parse_block_number(raw: str) -> str:
    """解析用户输入的区块号（十进制或 0x 前缀十六进制），返回十六进制标签"""
    text = raw.strip()
    if text.lower().startswith('0x'):
        return to_hex_block(int(text, 16))
    if not text.isdigit():
        raise ValueError(f"无效的区块号: {raw}")
    return to_hex_block(int(text))
