# When set, recoverable problems in content streams raise instead of
# being logged and worked around.
STRICT = False
