"""
Bech32 encoding for LNURL strings.

An LNURL is the bech32 encoding (human-readable part ``lnurl``, checksum
constant 1) of a UTF-8 URL. Wallets scan it, decode it back to the URL and
talk to the service from there. The usual 90 character bech32 limit does not
apply to LNURLs, so neither the encoder nor the decoder enforces it.
"""

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
LNURL_HRP = "lnurl"
BECH32_CONST = 1
CHECKSUM_LENGTH = 6

_GENERATORS = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)


class Bech32Error(ValueError):
    pass


def bech32_polymod(values: list[int]) -> int:
    """BCH checksum polynomial over GF(32)."""
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ value
        for i, generator in enumerate(_GENERATORS):
            if (top >> i) & 1:
                chk ^= generator
    return chk


def bech32_hrp_expand(hrp: str) -> list[int]:
    """High bits of each hrp character, a zero separator, then the low bits."""
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def bech32_create_checksum(hrp: str, data: list[int]) -> list[int]:
    values = bech32_hrp_expand(hrp) + list(data)
    polymod = bech32_polymod(values + [0] * CHECKSUM_LENGTH) ^ BECH32_CONST
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(CHECKSUM_LENGTH)]


def bech32_verify_checksum(hrp: str, data: list[int]) -> bool:
    """Check data words that still carry their trailing 6-word checksum."""
    return bech32_polymod(bech32_hrp_expand(hrp) + list(data)) == BECH32_CONST


def convert_bits(data, from_bits: int, to_bits: int, pad: bool = True) -> list[int]:
    """
    Regroup a sequence of ``from_bits``-wide integers into ``to_bits``-wide ones.

    Bits are consumed most significant first. With ``pad`` the final group is
    zero-filled; without it, leftover bits must be zero padding of less than
    one input group, otherwise the data was not produced by a padded encode.

    Raises:
        Bech32Error: on out-of-range input or non-reclaimable leftover bits
    """
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1

    for value in data:
        if value < 0 or (value >> from_bits):
            raise Bech32Error(f"Value {value} does not fit in {from_bits} bits")
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or ((acc << (to_bits - bits)) & maxv):
        raise Bech32Error("Invalid padding in bit conversion")

    return ret


def bech32_encode(hrp: str, data: list[int]) -> str:
    """Encode 5-bit words under ``hrp``. Output is lowercase."""
    checksum = bech32_create_checksum(hrp, data)
    return hrp + "1" + "".join(CHARSET[d] for d in list(data) + checksum)


def bech32_decode(bech: str) -> tuple[str, list[int]]:
    """
    Split a bech32 string into its hrp and data words (checksum removed).

    Raises:
        Bech32Error: on mixed case, bad characters, bad layout or bad checksum
    """
    if bech.lower() != bech and bech.upper() != bech:
        raise Bech32Error("Mixed case bech32 string")
    if any(ord(c) < 33 or ord(c) > 126 for c in bech):
        raise Bech32Error("Invalid character in bech32 string")

    bech = bech.lower()
    pos = bech.rfind("1")
    if pos < 1 or pos + CHECKSUM_LENGTH + 1 > len(bech):
        raise Bech32Error("Missing or misplaced bech32 separator")

    hrp = bech[:pos]
    data = []
    for c in bech[pos + 1 :]:
        index = CHARSET.find(c)
        if index == -1:
            raise Bech32Error(f"Invalid bech32 character: {c!r}")
        data.append(index)

    if not bech32_verify_checksum(hrp, data):
        raise Bech32Error("Invalid bech32 checksum")

    return hrp, data[:-CHECKSUM_LENGTH]


def encode_lnurl(url: str) -> str:
    """Encode a URL as an ``lnurl1...`` string."""
    words = convert_bits(url.encode("utf-8"), 8, 5, pad=True)
    return bech32_encode(LNURL_HRP, words)


def decode_lnurl(lnurl: str) -> str:
    """Decode an ``lnurl1...`` string (either case) back to its URL."""
    hrp, words = bech32_decode(lnurl.strip())
    if hrp != LNURL_HRP:
        raise Bech32Error(f"Unexpected human-readable part: {hrp!r}")
    return bytes(convert_bits(words, 5, 8, pad=False)).decode("utf-8")
