import pytest

import encrypter

PASSPHRASE = "30d9690cc085429a1d0a3ae787932bf1518a1798"


@pytest.fixture(scope="session")
def keypair_pem():
    """(private_pem, public_pem) for a passphrase-protected 2048-bit key."""
    return encrypter.generate_keypair(2048, PASSPHRASE)


@pytest.fixture(scope="session")
def other_keypair_pem():
    return encrypter.generate_keypair(2048)


@pytest.fixture(scope="session")
def public_key(keypair_pem):
    return encrypter.load_public_key(keypair_pem[1])


@pytest.fixture(scope="session")
def private_key(keypair_pem):
    return encrypter.load_private_key(keypair_pem[0], PASSPHRASE)


@pytest.fixture(scope="session")
def small_keypair():
    """(public handle, private handle) for a 1024-bit key."""
    private_pem, public_pem = encrypter.generate_keypair(1024)
    return encrypter.load_public_key(public_pem), encrypter.load_private_key(private_pem)
