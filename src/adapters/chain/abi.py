"""Contract ABIs for the token and the registry/donation contract."""

ERC20_ABI = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]

DONATION_ABI = [
    {
        "name": "contentExistsCheck",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "username", "type": "string"},
            {"name": "platform", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "donateTokenToContent",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "username", "type": "string"},
            {"name": "platform", "type": "string"},
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]
