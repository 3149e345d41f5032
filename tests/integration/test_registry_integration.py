"""
Integration tests for complete registry workflows.
"""

import threading

import pytest

from token_registry.manager import RegistryService
from token_registry.result import ErrorKind


pytestmark = pytest.mark.integration


class TestRegistryIntegration:
    """Test complete registry workflows over JSON file stores."""

    def test_ethereum_scenario(self, json_registry):
        """Register a chain, reject its duplicate, and query its tokens by name."""
        created = json_registry.create_blockchain("Ethereum", "L1")
        assert created.is_ok
        ethereum = created.value
        assert ethereum.updated_at is None

        duplicate = json_registry.create_blockchain("Ethereum", "L1 again")
        assert duplicate.kind == ErrorKind.CONFLICT

        token = json_registry.create_token({
            'name': 'Tether USD',
            'symbol': 'USDT',
            'decimals': 6,
            'totalSupply': 1000000,
            'description': 'Stablecoin',
            'contractAddress': '0xdac17f958d2ee523a2206206994597c13d831ec7',
            'blockchainId': ethereum.id,
        }).value

        tokens = json_registry.get_tokens_by_blockchain_name("Ethereum").value
        assert [t.id for t in tokens] == [token.id]
        assert json_registry.get_tokens_by_blockchain_name("Nonexistent").value == []

    def test_state_survives_reopen(self, temp_storage_dir):
        registry = RegistryService.open(storage_dir=temp_storage_dir)
        ethereum = registry.create_blockchain("Ethereum", "L1").value
        token = registry.create_token({
            'name': 'Dai', 'symbol': 'DAI', 'decimals': 18, 'total_supply': 10,
            'description': 'Stablecoin', 'contract_address': '0x6b17',
            'blockchain_id': ethereum.id,
        }).value
        updated = registry.update_token(token.id, {
            'name': 'Dai', 'symbol': 'DAI', 'decimals': 18, 'total_supply': 20,
            'description': 'Stablecoin', 'contract_address': '0x6b17',
            'blockchain_id': ethereum.id,
        }).value

        reopened = RegistryService.open(storage_dir=temp_storage_dir)

        restored = reopened.get_token_by_id(token.id).value
        assert restored.model_dump() == updated.model_dump()
        assert reopened.get_blockchain_by_name("Ethereum").value.id == ethereum.id
        assert reopened.create_blockchain("Ethereum", "L1").kind == ErrorKind.CONFLICT

    def test_delete_persists(self, temp_storage_dir):
        registry = RegistryService.open(storage_dir=temp_storage_dir)
        ethereum = registry.create_blockchain("Ethereum", "L1").value
        token = registry.create_token({
            'name': 'Dai', 'symbol': 'DAI', 'decimals': 18, 'total_supply': 10,
            'description': 'Stablecoin', 'contract_address': '0x6b17',
            'blockchain_id': ethereum.id,
        }).value

        registry.delete_token(token.id)
        reopened = RegistryService.open(storage_dir=temp_storage_dir)

        assert reopened.get_token_by_id(token.id).kind == ErrorKind.NOT_FOUND
        assert reopened.get_tokens().value == []

    def test_oversize_record_leaves_files_intact(self, temp_storage_dir):
        registry = RegistryService.open(storage_dir=temp_storage_dir, max_value_size=256)
        registry.create_blockchain("Ethereum", "L1")

        result = registry.create_blockchain("Solana", "x" * 1000)

        assert result.kind == ErrorKind.STORAGE
        reopened = RegistryService.open(storage_dir=temp_storage_dir)
        assert [b.name for b in reopened.get_blockchains().value] == ["Ethereum"]

    @pytest.mark.concurrency
    def test_concurrent_duplicate_names(self, json_registry):
        """Only one of many racing creates for the same name wins."""
        results = []
        barrier = threading.Barrier(8)

        def create():
            barrier.wait(timeout=5.0)
            results.append(json_registry.create_blockchain("Ethereum", "L1"))

        threads = [threading.Thread(target=create) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for r in results if r.is_ok) == 1
        assert sum(1 for r in results if r.is_err and r.kind == ErrorKind.CONFLICT) == 7
        assert len(json_registry.get_blockchains().value) == 1

    @pytest.mark.concurrency
    def test_concurrent_token_creation(self, json_registry):
        ethereum = json_registry.create_blockchain("Ethereum", "L1").value

        def create(index):
            json_registry.create_token({
                'name': f'Token {index}', 'symbol': f'T{index}', 'decimals': 0,
                'total_supply': index + 1, 'description': 'test',
                'contract_address': f'0x{index:04x}', 'blockchain_id': ethereum.id,
            })

        threads = [threading.Thread(target=create, args=(i,)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(json_registry.get_tokens_by_blockchain_id(ethereum.id).value) == 10

    def test_services_sharing_a_directory(self, temp_storage_dir):
        first = RegistryService.open(storage_dir=temp_storage_dir)
        second = RegistryService.open(storage_dir=temp_storage_dir)

        ethereum = first.create_blockchain("Ethereum", "L1").value
        duplicate = second.create_blockchain("Ethereum", "L1 again")
        second.create_blockchain("Solana", "L1")

        assert duplicate.kind == ErrorKind.CONFLICT
        assert {b.name for b in first.get_blockchains().value} == {"Ethereum", "Solana"}

        token = second.create_token({
            'name': 'Dai', 'symbol': 'DAI', 'decimals': 18, 'total_supply': 10,
            'description': 'Stablecoin', 'contract_address': '0x6b17',
            'blockchain_id': ethereum.id,
        }).value
        assert first.get_token_by_id(token.id).value.blockchain_id == ethereum.id

        reopened = RegistryService.open(storage_dir=temp_storage_dir)
        assert {b.name for b in reopened.get_blockchains().value} == {"Ethereum", "Solana"}
        assert [t.id for t in reopened.get_tokens().value] == [token.id]

    @pytest.mark.concurrency
    def test_duplicate_names_across_services(self, temp_storage_dir):
        """Racing creates through separate services still admit one name."""
        services = [RegistryService.open(storage_dir=temp_storage_dir) for _ in range(4)]
        results = []
        barrier = threading.Barrier(len(services))

        def create(service):
            barrier.wait(timeout=5.0)
            results.append(service.create_blockchain("Ethereum", "L1"))

        threads = [threading.Thread(target=create, args=(s,)) for s in services]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for r in results if r.is_ok) == 1
        assert sum(1 for r in results if r.is_err and r.kind == ErrorKind.CONFLICT) == 3
        reopened = RegistryService.open(storage_dir=temp_storage_dir)
        assert len(reopened.get_blockchains().value) == 1
