"""
Tests for BIP32 keys, BIP39 phrases and BIP84 account derivation.
"""

from __future__ import annotations

import pytest
from conftest import (
    BIP84_FIRST_CHANGE,
    BIP84_FIRST_RECEIVE,
    BIP84_FIRST_RECEIVE_PUBKEY,
    BIP84_SECOND_RECEIVE,
)

from btcwallet.errors import DerivationFailure, InvalidPhrase
from btcwallet.models import NetworkType
from btcwallet.wallet.bip32 import HDKey, mnemonic_to_seed, parse_path
from btcwallet.wallet.derivation import (
    account_path,
    derive_account,
    derive_private_key_for_path,
    generate_phrase,
    validate_phrase,
)


class TestParsePath:
    def test_hardened_and_normal(self):
        assert parse_path("m/84'/0'/0'/0/5") == [
            84 + 0x80000000,
            0x80000000,
            0x80000000,
            0,
            5,
        ]

    def test_h_marks_hardened(self):
        assert parse_path("m/84h/1h") == [84 + 0x80000000, 1 + 0x80000000]

    def test_master_only(self):
        assert parse_path("m") == []

    @pytest.mark.parametrize("path", ["84'/0'", "m//0", "m/abc", "m/2147483648"])
    def test_invalid(self, path):
        with pytest.raises(ValueError):
            parse_path(path)


class TestHDKey:
    def test_bip84_vector_pubkey(self, sample_mnemonic):
        master = HDKey.from_seed(mnemonic_to_seed(sample_mnemonic))
        with master.derive("m/84'/0'/0'/0/0") as key:
            assert key.get_public_key_bytes().hex() == BIP84_FIRST_RECEIVE_PUBKEY
            assert key.get_address(NetworkType.MAINNET) == BIP84_FIRST_RECEIVE
        master.wipe()

    def test_wipe_zeroes_buffers(self, sample_mnemonic):
        key = HDKey.from_seed(mnemonic_to_seed(sample_mnemonic))
        key.wipe()
        assert key.wiped
        assert not any(key._secret)
        assert not any(key._chain_code)

    def test_wiped_key_cannot_sign_or_derive(self, sample_mnemonic):
        key = HDKey.from_seed(mnemonic_to_seed(sample_mnemonic))
        key.wipe()
        with pytest.raises(RuntimeError):
            key.sign_digest(b"\x00" * 32)
        with pytest.raises(RuntimeError):
            key.derive("m/0")

    def test_context_manager_wipes(self, sample_mnemonic):
        with HDKey.from_seed(mnemonic_to_seed(sample_mnemonic)) as key:
            assert not key.wiped
        assert key.wiped

    def test_derive_master_path_returns_copy(self, sample_mnemonic):
        master = HDKey.from_seed(mnemonic_to_seed(sample_mnemonic))
        copy = master.derive("m")
        copy.wipe()
        assert not master.wiped
        assert any(master._secret)

    def test_relative_derivation_matches_absolute(self, sample_mnemonic):
        master = HDKey.from_seed(mnemonic_to_seed(sample_mnemonic))
        with master.derive("m/84'/0'/0'") as account, account.derive("m/0/1") as leaf:
            assert leaf.get_address("mainnet") == BIP84_SECOND_RECEIVE

    def test_sign_digest_length(self, sample_mnemonic):
        with HDKey.from_seed(mnemonic_to_seed(sample_mnemonic)) as key:
            with pytest.raises(ValueError):
                key.sign_digest(b"\x00" * 31)


class TestPhrase:
    def test_valid_phrase(self, sample_mnemonic):
        assert validate_phrase(sample_mnemonic)

    def test_whitespace_and_case_normalized(self, sample_mnemonic):
        assert validate_phrase("  " + sample_mnemonic.upper().replace(" ", "   ") + "\n")

    def test_bad_checksum(self, bad_checksum_mnemonic):
        assert not validate_phrase(bad_checksum_mnemonic)

    @pytest.mark.parametrize("phrase", ["", "not a phrase", "abandon " * 11 + "zzzz", None])
    def test_invalid_never_raises(self, phrase):
        assert validate_phrase(phrase) is False

    def test_generate_default_is_12_words(self):
        phrase = generate_phrase()
        assert len(phrase.split()) == 12
        assert validate_phrase(phrase)

    def test_generate_24_words(self):
        phrase = generate_phrase(256)
        assert len(phrase.split()) == 24
        assert validate_phrase(phrase)

    def test_generate_is_random(self):
        assert generate_phrase() != generate_phrase()

    def test_generate_rejects_bad_strength(self):
        with pytest.raises(ValueError):
            generate_phrase(100)


class TestDeriveAccount:
    def test_bip84_mainnet_vectors(self, sample_mnemonic):
        account = derive_account(
            sample_mnemonic, receive_count=2, change_count=1, network=NetworkType.MAINNET
        )
        assert [r.address for r in account.receive_addresses] == [
            BIP84_FIRST_RECEIVE,
            BIP84_SECOND_RECEIVE,
        ]
        assert account.change_addresses[0].address == BIP84_FIRST_CHANGE

    def test_record_layout(self, sample_mnemonic):
        account = derive_account(
            sample_mnemonic, receive_count=3, change_count=2, network=NetworkType.TESTNET
        )
        assert len(account.addresses) == 5
        # receive first, then change
        assert [r.is_change for r in account.addresses] == [False, False, False, True, True]
        assert [r.path for r in account.change_addresses] == [
            "m/84'/1'/0'/1/0",
            "m/84'/1'/0'/1/1",
        ]
        assert account.receive_addresses[2].path == "m/84'/1'/0'/0/2"
        assert account.receive_addresses[2].short_path == "0/2"
        assert all(r.address.startswith("tb1q") for r in account.addresses)

    def test_deterministic(self, sample_mnemonic):
        first = derive_account(sample_mnemonic, receive_count=2, change_count=2)
        second = derive_account(sample_mnemonic, receive_count=2, change_count=2)
        assert first == second

    def test_coin_type_per_network(self):
        assert account_path(NetworkType.MAINNET, 0) == "m/84'/0'/0'"
        assert account_path(NetworkType.TESTNET, 3) == "m/84'/1'/3'"
        assert account_path(NetworkType.SIGNET, 0) == "m/84'/1'/0'"
        assert account_path(NetworkType.REGTEST, 0) == "m/84'/1'/0'"

    def test_regtest_hrp(self, sample_mnemonic):
        account = derive_account(
            sample_mnemonic, receive_count=1, change_count=0, network=NetworkType.REGTEST
        )
        assert account.addresses[0].address.startswith("bcrt1q")

    def test_account_index_changes_addresses(self, sample_mnemonic):
        a0 = derive_account(sample_mnemonic, account_index=0, receive_count=1, change_count=0)
        a1 = derive_account(sample_mnemonic, account_index=1, receive_count=1, change_count=0)
        assert a0.addresses[0].address != a1.addresses[0].address
        assert a1.addresses[0].path == "m/84'/1'/1'/0/0"

    def test_passphrase_changes_addresses(self, sample_mnemonic):
        plain = derive_account(sample_mnemonic, receive_count=1, change_count=0)
        salted = derive_account(
            sample_mnemonic, receive_count=1, change_count=0, passphrase="TREZOR"
        )
        assert plain.addresses[0].address != salted.addresses[0].address

    def test_find(self, sample_mnemonic):
        account = derive_account(
            sample_mnemonic, receive_count=1, change_count=1, network=NetworkType.MAINNET
        )
        assert account.find(BIP84_FIRST_CHANGE).is_change
        assert account.find("bc1qunknown") is None

    def test_invalid_phrase(self, bad_checksum_mnemonic):
        with pytest.raises(InvalidPhrase):
            derive_account(bad_checksum_mnemonic)

    def test_negative_counts(self, sample_mnemonic):
        with pytest.raises(ValueError):
            derive_account(sample_mnemonic, receive_count=-1)


class TestDerivePrivateKeyForPath:
    def test_key_wiped_after_block(self, sample_mnemonic):
        with derive_private_key_for_path(sample_mnemonic, "m/84'/0'/0'/0/0") as key:
            assert key.get_address("mainnet") == BIP84_FIRST_RECEIVE
        assert key.wiped
        assert not any(key._secret)

    def test_key_wiped_on_exception(self, sample_mnemonic):
        with pytest.raises(ZeroDivisionError):
            with derive_private_key_for_path(sample_mnemonic, "m/84'/0'/0'/0/0") as key:
                raise ZeroDivisionError("boom")
        assert key.wiped

    def test_bad_path(self, sample_mnemonic):
        with pytest.raises(DerivationFailure):
            with derive_private_key_for_path(sample_mnemonic, "m/84'/x"):
                pass

    def test_invalid_phrase(self, bad_checksum_mnemonic):
        with pytest.raises(InvalidPhrase):
            with derive_private_key_for_path(bad_checksum_mnemonic, "m/84'/0'/0'/0/0"):
                pass
