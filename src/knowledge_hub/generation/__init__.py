"""
Generation — prompt assembly and streamed answers from the chat model.
"""
