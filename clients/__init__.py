"""PubChat client programs."""
