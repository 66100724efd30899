"""
Configuration constants for the SecureVault core.
"""

# Application Metadata
APP_VERSION = "1.0.0"  # Use: Current version of the package. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "SecureVault"  # Use: Name of the application, used in messages. Type: str. Range: Any valid string.

# Security Settings
SALT_SIZE = 32  # Use: Size of the cryptographic salt in bytes generated for a new vault. Type: int. Range: SALT_SIZE_MIN to SALT_SIZE_MAX.
SALT_SIZE_MIN = 16  # Use: Smallest salt accepted when reading a vault header. Type: int. Range: At least 16 bytes (128 bits).
SALT_SIZE_MAX = 32  # Use: Largest salt accepted when reading a vault header. Type: int. Range: SALT_SIZE_MIN to 255.
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes (AES-256).
VERIFY_HASH_SIZE = 32  # Use: Size of the passphrase verification hash stored in the header. Type: int. Range: 32 bytes.
NONCE_SIZE = 12  # Use: Size of the Nonce (Number used once) in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits) is the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the authentication tag in bytes for AES-GCM. Type: int. Range: 16 bytes (128 bits).
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Controls the number of iterations. Type: int. Range: ARGON2_TIME_COST_MAX >= value >= 1.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost parameter in KiB. Type: int. Range: At least 8 * parallelism, at most ARGON2_MEMORY_COST_MAX.
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter (lanes). Type: int. Range: 1 to ARGON2_PARALLELISM_MAX.
ARGON2_TIME_COST_MAX = 8  # Use: Upper bound on the time cost accepted from a vault header. Type: int. Range: Positive integer.
ARGON2_MEMORY_COST_MAX = 256 * 1024  # Use: Upper bound on memory cost (KiB) accepted from a vault header (256 MiB). Type: int. Range: Positive integer.
ARGON2_PARALLELISM_MAX = 16  # Use: Upper bound on parallelism accepted from a vault header. Type: int. Range: Positive integer.
HKDF_INFO_VERIFY = b"securevault/v1/verify"  # Use: HKDF info tag for the passphrase verification hash. Type: bytes. Range: Must differ from HKDF_INFO_ENCRYPT.
HKDF_INFO_ENCRYPT = b"securevault/v1/encrypt"  # Use: HKDF info tag for the AES-256-GCM key. Type: bytes. Range: Must differ from HKDF_INFO_VERIFY.

# File Format
MAGIC_BYTES = b"SVLT"  # Use: Magic bytes opening every vault header. Type: bytes. Range: Exactly 4 bytes.
FORMAT_VERSION = 1  # Use: Vault file format version written by this package. Type: int. Range: Unsigned 32-bit integer.
HEADER_LENGTH_MAX = 1024  # Use: Largest header length prefix accepted when reading. Type: int. Range: Larger than the biggest valid header.
STORE_FORMAT_VERSION = 1  # Use: Version tag of the JSON credential payload inside the encrypted blob. Type: int. Range: Positive integer.

# File and Directory Names
CONFIG_DIR_NAME = ".securevault"  # Use: Name of the hidden directory within the user's home directory that holds the default vault. Type: str. Range: Any valid directory name.
DEFAULT_VAULT_FILE = "vault.enc"  # Use: Default filename for the encrypted vault. Type: str. Range: Any valid filename.
VAULT_PATH_ENV = "SECUREVAULT_PATH"  # Use: Environment variable overriding the default vault path. Type: str. Range: Any valid environment variable name.
TEMP_FILE_SUFFIX = ".tmp"  # Use: Suffix of the temporary file written before the atomic replace. Type: str. Range: Any valid filename suffix.

# Password Generator Settings
PASSWORD_GENERATOR_DEFAULT_LENGTH = 16  # Use: Default length for generated passwords. Type: int. Range: PASSWORD_GENERATOR_MIN_LENGTH to PASSWORD_GENERATOR_MAX_LENGTH.
PASSWORD_GENERATOR_MIN_LENGTH = 4  # Use: Minimum allowed length for generated passwords (one character per class). Type: int. Range: Positive integer.
PASSWORD_GENERATOR_MAX_LENGTH = 128  # Use: Maximum allowed length for generated passwords. Type: int. Range: Positive integer.
PASSWORD_GENERATOR_SYMBOLS = "!@#$%^&*()-_=+[]{}|;:,.<>?"  # Use: Symbol characters available to the generator. Type: str. Range: Any string of printable characters.
PASSWORD_GENERATOR_AMBIGUOUS_CHARS = "0O1lI"  # Use: Characters considered ambiguous and can be excluded from generated passwords. Type: str. Range: Any string of characters.
