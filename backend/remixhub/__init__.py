"""RemixHub Registry - design IP publishing backend"""
