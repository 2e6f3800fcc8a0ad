from conftest import CONTRACT_A, alchemy_nft, reservoir_ask, reservoir_token, to_wei

from art_scout.models import Chain, Confidence, SourceTag, TokenStandard
from art_scout.normalizer import Normalizer, convert_ipfs_to_http, platform_for_contract

FOUNDATION_SHARED = "0x3B3ee1931Dc30C1957379FAc9aba94D1C48a5405"


def test_convert_ipfs_urls():
    assert convert_ipfs_to_http("ipfs://QmHash/1.png") == "https://cloudflare-ipfs.com/ipfs/QmHash/1.png"
    assert convert_ipfs_to_http("ipfs://ipfs/QmHash") == "https://cloudflare-ipfs.com/ipfs/QmHash"
    assert convert_ipfs_to_http("https://example.com/a.png") == "https://example.com/a.png"
    assert convert_ipfs_to_http(None) is None


def test_platform_labels_are_case_insensitive():
    assert platform_for_contract(FOUNDATION_SHARED) == "Foundation"
    assert platform_for_contract(CONTRACT_A) == "Independent"


def test_normalize_alchemy_nft():
    nft = alchemy_nft(CONTRACT_A.upper().replace("0X", "0x"), 7, name="Dawn")
    nft["raw"]["metadata"] = {"artist": "Ada"}
    candidate = Normalizer.normalize_alchemy_nft(nft, source=SourceTag.CONTRACT)

    assert candidate.identity == (CONTRACT_A, "7")
    assert candidate.name == "Dawn"
    assert candidate.artist == "Ada"
    assert candidate.image_url == "https://img.example/art.png"
    assert candidate.source == "contract"
    assert candidate.listed_price is None
    assert candidate.is_one_of_one


def test_normalize_alchemy_nft_without_identity():
    nft = alchemy_nft(CONTRACT_A, 1)
    nft["tokenId"] = None
    assert Normalizer.normalize_alchemy_nft(nft) is None


def test_multi_supply_one_of_one():
    nft = alchemy_nft(CONTRACT_A, 1, token_type="ERC1155")
    nft["balance"] = "1"
    nft["contract"]["totalSupply"] = "1"
    candidate = Normalizer.normalize_alchemy_nft(nft)
    assert candidate.token_standard == TokenStandard.MULTI.value
    assert candidate.is_one_of_one

    nft["contract"]["totalSupply"] = "25"
    assert not Normalizer.normalize_alchemy_nft(nft).is_one_of_one


def test_artist_falls_back_to_contract_name():
    candidate = Normalizer.normalize_alchemy_nft(alchemy_nft(CONTRACT_A, 1))
    assert candidate.artist == "Test Collection"


def test_normalize_reservoir_ask_is_pre_priced():
    candidate = Normalizer.normalize_reservoir_ask(reservoir_ask(CONTRACT_A, 3, "0.42"), Chain.BASE)

    assert candidate.source == SourceTag.ORDERBOOK.value
    assert candidate.listed_price.amount == "0.42"
    assert candidate.listed_price.confidence == Confidence.REAL.value
    assert candidate.listed_price.marketplace == "OpenSea"


def test_collection_wide_asks_are_skipped():
    order = reservoir_ask(CONTRACT_A, 3, "0.42")
    order["criteria"]["kind"] = "collection"
    assert Normalizer.normalize_reservoir_ask(order, Chain.BASE) is None


def test_reservoir_price_prefers_raw_amount():
    token = reservoir_token("0.05")
    token["market"]["floorAsk"]["price"]["amount"]["decimal"] = 0.0499999
    quote = Normalizer.quote_from_reservoir_token(token, Chain.BASE)
    assert quote.amount == "0.05"


def test_reservoir_token_without_ask():
    assert Normalizer.quote_from_reservoir_token({"market": {"floorAsk": {}}}, Chain.BASE) is None
    assert Normalizer.quote_from_reservoir_token(None, Chain.BASE) is None


def test_subgraph_auction_wins_over_buy_now():
    market = {
        "auctions": [{"reservePrice": to_wei("0.1"), "highestBid": to_wei("0.3")}],
        "buyPrices": [{"price": to_wei("0.2")}],
    }
    quote = Normalizer.quote_from_subgraph_market(market, Chain.ETHEREUM)
    assert quote.amount == "0.3"
    assert quote.chain == "ethereum"
    assert quote.marketplace == "Foundation Auction"


def test_subgraph_buy_now():
    quote = Normalizer.quote_from_subgraph_market({"auctions": [], "buyPrices": [{"price": to_wei("0.2")}]}, Chain.BASE)
    assert quote.amount == "0.2"
    assert quote.marketplace == "Foundation Buy Now"


def test_foundation_artwork_states():
    active_market = {"market": {"status": "active", "buyNowPrice": to_wei("0.7")}}
    assert Normalizer.quote_from_foundation_artwork(active_market, Chain.BASE).amount == "0.7"

    live_auction = {"market": {"status": "inactive"}, "auction": {"status": "active", "currentBid": to_wei("1.25")}}
    assert Normalizer.quote_from_foundation_artwork(live_auction, Chain.BASE).amount == "1.25"

    assert Normalizer.quote_from_foundation_artwork({"market": {"status": "sold"}}, Chain.BASE) is None
