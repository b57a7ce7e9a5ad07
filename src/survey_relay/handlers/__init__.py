"""
Serverless HTTP entry points (Lambda / Netlify style `handler(event, context)`).
"""
