from domain.ledger import AssetId

BNB = AssetId("BNB")
BTC = AssetId("BTC")
BUSD = AssetId("BUSD")
ETH = AssetId("ETH")
NANO = AssetId("NANO")
USD = AssetId("USD")
USDT = AssetId("USDT")
VET = AssetId("VET")
XRP = AssetId("XRP")

USER_ID = "123456789"
