from eth_utils import is_address, to_checksum_address


def validate_eth_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum ethereum address"""
    if not address or not isinstance(address, str):
        raise ValueError(
            f"Invalid {param_name}: address must be a non-empty string"
        )
    if not is_address(address):
        raise ValueError(
            f"Invalid {param_name}: {address} is not a valid Ethereum address"
        )
    return to_checksum_address(address)


def validate_block_number(block_number: int, param_name: str = "block") -> int:
    """Validate a non-negative block number or block count"""
    if block_number < 0:
        raise ValueError(f"Invalid {param_name}: {block_number} must be >= 0")
    return block_number


def validate_decimals(decimals: int) -> int:
    """Validate ERC20 decimals"""
    if not 0 <= decimals <= 77:
        raise ValueError(f"Invalid decimals: {decimals}. Must be between 0 and 77")
    return decimals


def validate_block_range(start_block: int, end_block: int) -> int:
    """Validate that a scan ending at end_block does not end before it starts"""
    if end_block < start_block:
        raise ValueError(
            f"Invalid end_block: {end_block} is before start block {start_block}"
        )
    return end_block
