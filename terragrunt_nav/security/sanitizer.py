"""
Input validation for commands built by terragrunt-nav.

Clone arguments come straight from configuration text, so they are
checked before reaching subprocess to prevent:
- Option injection (arguments read as git/bash flags)
- NUL bytes and oversized arguments
"""


class SecurityError(Exception):
    """Raised when a security validation fails."""
    pass


class InputSanitizer:
    """
    Provides input validation methods.

    Methods raise SecurityError if validation fails.
    """

    MAX_COMMAND_ARG_LENGTH = 10000

    @staticmethod
    def sanitize_clone_arg(value: str, label: str = "argument") -> str:
        """
        Validate one positional argument for the clone helper.

        Rules:
        - Cannot be empty
        - Cannot start with a hyphen (would be parsed as an option)
        - Must pass is_safe_command_arg()

        Args:
            value: Argument to validate
            label: Human-readable name used in error messages

        Returns:
            Validated argument (unchanged if valid)

        Raises:
            SecurityError: If the argument is unsafe
        """
        if not value:
            raise SecurityError(f"Clone {label} cannot be empty")

        if value.startswith("-"):
            raise SecurityError(f"Clone {label} cannot start with hyphen: {value}")

        if not InputSanitizer.is_safe_command_arg(value):
            raise SecurityError(f"Unsafe clone {label}")

        return value

    @staticmethod
    def is_safe_command_arg(arg: str) -> bool:
        """
        Check if a command argument is safe to pass to subprocess.

        This is a defense-in-depth check. We should always use shell=False,
        but this adds an extra layer of validation.

        Args:
            arg: Command argument to check

        Returns:
            True if safe, False otherwise
        """
        # Check for null bytes (can cause command injection in some cases)
        if '\x00' in arg:
            return False

        # Check for extremely long arguments (potential DoS)
        if len(arg) > InputSanitizer.MAX_COMMAND_ARG_LENGTH:
            return False

        return True
