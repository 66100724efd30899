"""
Random password generation for new credentials.
"""

import string
import secrets

from . import config


def generate_password(length: int = config.PASSWORD_GENERATOR_DEFAULT_LENGTH,
                      use_uppercase: bool = True,
                      use_lowercase: bool = True,
                      use_digits: bool = True,
                      use_symbols: bool = True,
                      exclude_ambiguous: bool = False) -> str:
    """
    Generate a random password.

    At least one character of every selected class is included; the rest are
    drawn from the union of the classes and the result is shuffled.

    Args:
        length: Password length, within the generator bounds in config
        use_uppercase: Include A-Z
        use_lowercase: Include a-z
        use_digits: Include 0-9
        use_symbols: Include PASSWORD_GENERATOR_SYMBOLS
        exclude_ambiguous: Drop characters such as 0/O and 1/l/I

    Raises:
        ValueError: If the length is out of bounds or no class is selected.
    """
    if not config.PASSWORD_GENERATOR_MIN_LENGTH <= length <= config.PASSWORD_GENERATOR_MAX_LENGTH:
        raise ValueError(
            f"Password length must be between {config.PASSWORD_GENERATOR_MIN_LENGTH} "
            f"and {config.PASSWORD_GENERATOR_MAX_LENGTH}"
        )

    classes = []
    if use_uppercase:
        classes.append(string.ascii_uppercase)
    if use_lowercase:
        classes.append(string.ascii_lowercase)
    if use_digits:
        classes.append(string.digits)
    if use_symbols:
        classes.append(config.PASSWORD_GENERATOR_SYMBOLS)
    if not classes:
        raise ValueError("Select at least one character type")

    if exclude_ambiguous:
        ambiguous = config.PASSWORD_GENERATOR_AMBIGUOUS_CHARS
        classes = [''.join(c for c in chars if c not in ambiguous) for chars in classes]

    chars = ''.join(classes)
    password = [secrets.choice(group) for group in classes]
    password += [secrets.choice(chars) for _ in range(length - len(password))]
    secrets.SystemRandom().shuffle(password)
    return ''.join(password)
