"""Venus core pool ABI fragments."""
from ..abi import fn

COMPTROLLER_ABI = [
    fn("markets", ("address",), ("bool", "uint256", "bool")),
    fn("checkMembership", ("address", "address"), ("bool",)),
    fn("venusSupplySpeeds", ("address",), ("uint256",)),
    fn("enterMarkets", ("address[]",), ("uint256[]",), "nonpayable"),
    fn("claimVenus", ("address",), (), "nonpayable"),
]

VTOKEN_ABI = [
    fn("supplyRatePerBlock", (), ("uint256",)),
    fn("borrowRatePerBlock", (), ("uint256",)),
    fn("totalSupply", (), ("uint256",)),
    fn("totalBorrows", (), ("uint256",)),
    fn("getCash", (), ("uint256",)),
    fn("exchangeRateStored", (), ("uint256",)),
    fn("getAccountSnapshot", ("address",), ("uint256", "uint256", "uint256", "uint256")),
    fn("mint", ("uint256",), ("uint256",), "nonpayable"),
    fn("redeemUnderlying", ("uint256",), ("uint256",), "nonpayable"),
    fn("borrow", ("uint256",), ("uint256",), "nonpayable"),
    fn("repayBorrow", ("uint256",), ("uint256",), "nonpayable"),
]

# vBNB takes the native coin as msg.value instead of an amount argument.
VBNB_ABI = [
    fn("mint", (), (), "payable"),
    fn("repayBorrow", (), (), "payable"),
]

ORACLE_ABI = [
    fn("getUnderlyingPrice", ("address",), ("uint256",)),
]
