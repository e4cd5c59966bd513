"""Schedule computation.

Durations are derived from task dates first, then fed to the Critical Path
Method. Both steps are pure; nothing here touches the store.
"""
