"""Identity and email bans"""
