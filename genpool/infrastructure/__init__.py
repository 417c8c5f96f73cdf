"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (AI provider SDKs, configuration
files, the console) by implementing the interfaces defined in the domain layer.
Also hosts the credential pool, the resilient call executor and the
structured-output recovery engine.
"""
