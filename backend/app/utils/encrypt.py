from cryptography.fernet import Fernet, InvalidToken
from app.config import settings


def get_fernet() -> Fernet:
    """Returns a Fernet instance keyed from settings."""
    return Fernet(settings.encryption_key.encode('utf-8'))


def encrypt_token(token: str) -> str:
    """Encrypts a GitHub access token for storage."""
    return get_fernet().encrypt(token.encode('utf-8')).decode('utf-8')


def decrypt_token(encrypted_token: str) -> str:
    """Decrypts a stored GitHub access token.

    Raises ValueError when the stored value was written with another key.
    """
    try:
        return get_fernet().decrypt(encrypted_token.encode('utf-8')).decode('utf-8')
    except InvalidToken as e:
        raise ValueError("Stored GitHub token cannot be decrypted") from e
