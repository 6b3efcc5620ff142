# Bots module - trading strategies
