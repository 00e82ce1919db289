"""
Core types for tokenization.
"""

type TokenId = int
type ByteLevelToken = str
type MergePair = tuple[ByteLevelToken, ByteLevelToken]
type MergeRanks = dict[MergePair, int]
type Offset = tuple[int, int]
