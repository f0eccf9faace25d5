"""Aave V3 ABI fragments."""
from ..abi import fn

POOL_ABI = [
    fn(
        "getUserAccountData",
        ("address",),
        ("uint256", "uint256", "uint256", "uint256", "uint256", "uint256"),
    ),
    fn("supply", ("address", "uint256", "address", "uint16"), (), "nonpayable"),
    fn("withdraw", ("address", "uint256", "address"), ("uint256",), "nonpayable"),
    fn(
        "borrow",
        ("address", "uint256", "uint256", "uint16", "address"),
        (),
        "nonpayable",
    ),
    fn("repay", ("address", "uint256", "uint256", "address"), ("uint256",), "nonpayable"),
    fn("setUserUseReserveAsCollateral", ("address", "bool"), (), "nonpayable"),
]

DATA_PROVIDER_ABI = [
    # unbacked, accruedToTreasuryScaled, totalAToken, totalStableDebt,
    # totalVariableDebt, liquidityRate, variableBorrowRate, stableBorrowRate,
    # averageStableBorrowRate, liquidityIndex, variableBorrowIndex,
    # lastUpdateTimestamp
    fn("getReserveData", ("address",), ("uint256",) * 11 + ("uint40",)),
    # decimals, ltv, liquidationThreshold, liquidationBonus, reserveFactor,
    # usageAsCollateralEnabled, borrowingEnabled, stableBorrowRateEnabled,
    # isActive, isFrozen
    fn(
        "getReserveConfigurationData",
        ("address",),
        ("uint256",) * 5 + ("bool",) * 5,
    ),
    # currentATokenBalance, currentStableDebt, currentVariableDebt,
    # principalStableDebt, scaledVariableDebt, stableBorrowRate, liquidityRate,
    # stableRateLastUpdated, usageAsCollateralEnabled
    fn(
        "getUserReserveData",
        ("address", "address"),
        ("uint256",) * 7 + ("uint40", "bool"),
    ),
]

ORACLE_ABI = [
    fn("getAssetPrice", ("address",), ("uint256",)),
]

INCENTIVES_ABI = [
    fn(
        "claimAllRewardsToSelf",
        ("address[]",),
        ("address[]", "uint256[]"),
        "nonpayable",
    ),
]

# Variable interest rate mode for borrow/repay.
VARIABLE_RATE_MODE = 2
