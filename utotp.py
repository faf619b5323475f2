"""
Copyright (C) 2026 Jiale Xu (许嘉乐) (ANTmmmmm) <https://github.com/ant-cave>
Email: ANTmmmmm@outlook.com, ANTmmmmm@126.com, 1504596931@qq.com

Copyright (C) 2026 Xinhang Chen (陈欣航) <https://github.com/cxh09>
Email: abc.cxh2009@foxmail.com

Copyright (C) 2026 Zimo Wen (温子墨) <https://github.com/lusamaqq>
Email: 1220594170@qq.com

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.

TOTP验证码计算库（RFC 4226 / RFC 6238）
纯函数：时间由调用方传入，不在库里读系统时钟
"""

import base64
import binascii
import hashlib
import hmac
import math
import struct
from dataclasses import dataclass
from enum import Enum

DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30
MIN_DIGITS = 6
MAX_DIGITS = 8


class TotpError(ValueError):
    """入网/配置阶段的错误基类，信息会原样返回给调用方用于修正输入"""


class InvalidSecret(TotpError):
    pass


class InvalidDigitCount(TotpError):
    pass


class UnsupportedAlgorithm(TotpError):
    pass


class MalformedDescriptor(TotpError):
    pass


class Algorithm(str, Enum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def digestmod(self):
        return _DIGESTS[self]


_DIGESTS = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
}


@dataclass(frozen=True)
class TotpParameters:
    algorithm: Algorithm = Algorithm.SHA1
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD


def derive_counter(unix_time: float, period: int) -> int:
    """根据时间戳计算时间步计数器（向下取整，不四舍五入）"""
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    return math.floor(unix_time) // period


def compute_code(secret: bytes, algorithm: Algorithm, digits: int, counter: int) -> str:
    """
    计算某个计数器对应的验证码
    :param secret: 原始密钥字节（不是base32）
    :param algorithm: HMAC使用的哈希算法
    :param digits: 验证码位数，只允许6~8位
    :param counter: 时间步计数器
    :return: 左侧补0的十进制字符串
    """
    if not secret:
        raise InvalidSecret("secret must not be empty")
    if not MIN_DIGITS <= digits <= MAX_DIGITS:
        raise InvalidDigitCount(f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}, got {digits}")
    if counter < 0:
        raise ValueError("counter must be non-negative")

    counter_bytes = struct.pack(">Q", counter)  # 大端8字节
    mac = hmac.new(secret, counter_bytes, Algorithm(algorithm).digestmod).digest()

    # 动态截断：最后一个字节的低4位作为偏移
    offset = mac[-1] & 0x0F
    binary = struct.unpack(">I", mac[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(binary % 10 ** digits).zfill(digits)


def normalize_algorithm(name: str) -> Algorithm:
    """把二维码里各种写法的算法名（sha1、SHA-1、Sha256...）统一成Algorithm"""
    key = name.strip().upper().replace("-", "").replace("_", "")
    try:
        return Algorithm(key)
    except ValueError:
        raise UnsupportedAlgorithm(f"unsupported algorithm: {name!r}") from None


def normalize_parameters(descriptor) -> TotpParameters:
    """从入网描述里取出算法参数，缺省的字段用默认值（SHA1 / 6位 / 30秒）

    descriptor 只要有 algorithm、digits、period 三个属性即可，缺省为None
    """
    algorithm = Algorithm.SHA1
    if descriptor.algorithm:
        algorithm = normalize_algorithm(descriptor.algorithm)

    digits = DEFAULT_DIGITS if descriptor.digits is None else descriptor.digits
    if not MIN_DIGITS <= digits <= MAX_DIGITS:
        raise InvalidDigitCount(f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}, got {digits}")

    period = DEFAULT_PERIOD if descriptor.period is None else descriptor.period
    if period <= 0:
        raise MalformedDescriptor(f"period must be a positive number of seconds, got {period}")

    return TotpParameters(algorithm=algorithm, digits=digits, period=period)


def decode_secret(text: str) -> bytes:
    """解码base32密钥，自动补全=并忽略大小写和空格

    otpauth 里的密钥通常不带填充，这里补到8的倍数再解码
    """
    if not text:
        raise MalformedDescriptor("secret is missing")
    cleaned = "".join(text.split()).rstrip("=").upper()
    if not cleaned:
        raise MalformedDescriptor("secret is missing")

    padding_len = (8 - len(cleaned) % 8) % 8
    try:
        secret = base64.b32decode(cleaned + "=" * padding_len)
    except (binascii.Error, ValueError) as e:
        raise MalformedDescriptor(f"secret is not valid base32: {e}") from None
    if not secret:
        raise MalformedDescriptor("secret decodes to zero bytes")
    return secret


def encode_secret(secret: bytes) -> str:
    """原始密钥转成不带填充的base32，存盘和生成二维码用"""
    return base64.b32encode(secret).decode("ascii").rstrip("=")
