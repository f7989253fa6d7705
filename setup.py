"""
Setup configuration for the Option-Book Risk Engine.

References:
    Black, F., & Scholes, M. (1973). The Pricing of Options and Corporate
    Liabilities. Journal of Political Economy, 81(3), 637-654.
    Engle, R. (2002). Dynamic Conditional Correlation. JBES, 20(3), 339-350.
    Barone-Adesi, G., Giannopoulos, K., & Vosper, L. (1999). VaR without
    correlations for portfolios of derivative securities. J. Futures Markets.
"""
from setuptools import setup, find_packages

setup(
    name="option-book-fhs-risk",
    version="1.0.0",
    author="Jose Orlando Bobadilla Fuentes",
    description="Option-book Greeks, delta-normal VaR and GARCH-DCC filtered historical simulation VaR",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=["numpy>=1.24.0", "scipy>=1.10.0", "pandas>=2.0.0",
                      "arch>=6.2.0", "matplotlib>=3.7.0"],
    extras_require={
        "dev": ["pytest>=7.4.0", "black", "flake8"],
    },
)
