"""Configuration errors raised by the tax and RMD calculators.

Statutory parameters are never defaulted: an unknown filing status, an
unsupported tax year or a missing table row is reported to the caller.
"""


class ConfigurationError(ValueError):
    """Base class for invalid or unsupported tax configuration."""


class UnsupportedTaxYearError(ConfigurationError):
    def __init__(self, year):
        super().__init__(f"Invalid tax year: {year}. Must be one of the years in the tax tables.")
        self.year = year


class UnknownFilingStatusError(ConfigurationError):
    def __init__(self, filing_status):
        super().__init__(f"Invalid filing status: {filing_status!r}")
        self.filing_status = filing_status


class MissingStateDataError(ConfigurationError):
    def __init__(self, state, year):
        super().__init__(f"No tax data found for state: {state} in {year}")
        self.state = state
        self.year = year


class MissingLifeExpectancyFactorError(ConfigurationError):
    def __init__(self, age):
        super().__init__(f"No Uniform Lifetime factor for age {age}")
        self.age = age


__all__ = [
    "ConfigurationError",
    "UnsupportedTaxYearError",
    "UnknownFilingStatusError",
    "MissingStateDataError",
    "MissingLifeExpectancyFactorError",
]
