"""SplitSettle: group expense splitting and settlement."""
