import bcrypt
from flask import current_app


def hash_password(password):
    rounds = current_app.config.get('BCRYPT_LOG_ROUNDS', 10)
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds)).decode('utf-8')


def is_password_match(password, hashed):
    """False for accounts without a password (Google sign-in)."""
    if not password or not hashed:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
