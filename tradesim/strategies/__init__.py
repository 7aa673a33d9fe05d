"""Strategy signal generators and the registry that names them.

Two variants exist: moving-average crossover and RSI threshold. Both turn
a daily price series into one BUY/SELL/HOLD signal per bar.
"""
