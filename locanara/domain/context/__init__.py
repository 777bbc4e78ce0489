# Conversation context for on-device models with small windows
#
# +---------------------------+
# |          Memory           |   (in-process, bounded by token budget)
# |---------------------------|
# | BufferMemory: last N      |
# | SummaryMemory: summary +  |
# |   verbatim recent window  |
# +---------------------------+
#              |
#              v
# +---------------------------+
# |          Prompt           |   (assembled per call)
# |---------------------------|
# | System prompt             |
# | Serialized history        |
# | Current user input        |
# +---------------------------+
#              |
#              v
#     [GenerationBackend]
