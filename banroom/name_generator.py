import random

ROOM_CODE_MIN = 100000
ROOM_CODE_MAX = 999999


def generate_bracket_id(sequence: int) -> str:
    """Sequential bracket id like 'B001', 'B002'"""
    return f"B{sequence:03d}"


def generate_match_id(round_num: int, position: int) -> str:
    """Match id scoped to its round, like 'R1-M001' for the first match of round 1"""
    return f"R{round_num}-M{position:03d}"


def generate_room_code() -> str:
    """Six digit code players can type in, like '482913'"""
    return str(random.randint(ROOM_CODE_MIN, ROOM_CODE_MAX))


def parse_bracket_sequence(bracket_id: str) -> int:
    """Inverse of generate_bracket_id; 0 for ids outside the 'B###' scheme."""
    if not bracket_id or not bracket_id.startswith('B'):
        return 0
    try:
        return int(bracket_id[1:])
    except ValueError:
        return 0
