"""Built-in tools. Importing a module registers its tools."""
