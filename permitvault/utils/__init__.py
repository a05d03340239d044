"""
permitvault.utils — byte, address and hash helpers shared by the crypto and
state layers. Import from the submodules:

    from permitvault.utils.bytes import to_address, u256_word
    from permitvault.utils.hash import keccak256
"""
