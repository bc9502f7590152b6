"""
AWS resource adapters: declarative configuration in, AWS API calls out.
"""

__title__ = "fix-provider-aws"
__description__ = "AWS resource adapters with composite identifiers and status polling."
__version__ = "0.1.0"
