#!/usr/bin/env python3
import os
import aws_cdk as cdk
from wishlist_api.wishlist_api_stack import WishlistApiStack


app = cdk.App()

# Stage controls logical environment (dev/stage/prod).
stage = os.getenv("STAGE", "dev")

WishlistApiStack(
    app,
    f"WishlistApiStack-{stage}",
    stage=stage,
    # Account/Region are determined from the CLI or environment variables.
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"),
        region=os.getenv("CDK_DEFAULT_REGION"),
    ),
)

app.synth()
