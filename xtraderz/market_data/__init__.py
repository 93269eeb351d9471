"""Market data: order book views, recent trades, statistics and candlesticks."""