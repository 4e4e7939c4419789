"""RemixHub Registry - Services"""
