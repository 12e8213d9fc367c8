"""
Example function traced by serverless-lumigo.

Run `serverless-lumigo --config examples/python_service/serverless.json wrap`
to generate examples/python_service/_lumigo/hello.py.
"""

import json


def handler(event, context):
    return {
        "statusCode": 200,
        "body": json.dumps({"message": "hello", "input": event}),
    }
