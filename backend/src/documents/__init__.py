"""Driver documents: upload protocol, metadata, AI scans, status views"""
