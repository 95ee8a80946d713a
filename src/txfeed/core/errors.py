class TxFeedError(Exception):
    pass


class DataSourceError(TxFeedError):
    pass


class RateLimitError(DataSourceError):
    pass


class FetchError(DataSourceError):
    """A history page could not be loaded; accumulated state stays valid."""
