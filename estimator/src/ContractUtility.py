"""ContractUtility: Web3 initialization and contract ABI loading."""

import json
from pathlib import Path

from web3 import Web3
from web3.contract import Contract


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    :ivar rpc_url: Ethereum JSON-RPC endpoint URL.
    :ivar w3: Configured Web3 instance.
    """

    def __init__(self, rpc_url: str, timeout: float = 10.0) -> None:
        """Initialize the contract utility.

        :param rpc_url: JSON-RPC endpoint to connect to.
        :param timeout: HTTP request timeout in seconds.
        """
        self.rpc_url = rpc_url
        self.w3 = Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    def get_contract(self, contract_name: str, address: str) -> Contract:
        """Bind a bundled ABI to an on-chain address.

        :param contract_name: Name of the bundled ABI (e.g., "UniswapV3Pool").
        :param address: Contract address (any checksum case).
        :returns: web3 Contract instance.
        """
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=self.get_abi(contract_name),
        )

    @staticmethod
    def get_abi(contract_name: str) -> list:
        """Load the ABI of a contract from the abi folder.

        :param contract_name: Name of the contract (e.g., "UniswapV3Pool").
        :returns: ABI as a list of entries.
        """
        abi_path = (Path(__file__).parent / "abi" / f"{contract_name}.json").resolve()

        with open(abi_path, "r") as file:
            contract_data = json.load(file)

        return contract_data["abi"]
