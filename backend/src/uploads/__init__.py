"""Client-side batch uploads over the three-phase upload protocol"""
