"""
formrelay - contact form relay to a spreadsheet append endpoint
"""
