from insight.auction.models import AuctionBid, AuctionRequest, AuctionResult, ValueFactor

__all__ = ["AuctionBid", "AuctionRequest", "AuctionResult", "ValueFactor"]
