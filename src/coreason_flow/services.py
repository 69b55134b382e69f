# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco

from coreason_flow.core.contracts import ExecuteResponse, ExecuteRequest, Message
from coreason_flow.core.interfaces import MessageChannel
from coreason_flow.engine.runner import GraphExecutor
from coreason_flow.utils.logger import logger


class FlowDispatcher:
    """
    Routes a normalized inbound message through a flow and sends the reply
    back on the channel it came from.
    """

    def __init__(self, executor: GraphExecutor, channel: MessageChannel | None = None) -> None:
        self.executor = executor
        self.channel = channel

    async def handle_message(self, message: Message, flow_id: str) -> ExecuteResponse:
        response = await self.executor.execute(
            ExecuteRequest(
                flow_id=flow_id,
                input=message.content,
                user_id=message.user_id,
                channel_id=message.channel_id,
                context={"channel": message.channel, "message_type": message.type},
            )
        )

        if response.output and self.channel is not None:
            try:
                await self.channel.send(message.user_id, response.output)
            except Exception as e:
                logger.error(f"Failed to send reply to {message.user_id} on {message.channel_id}: {e}")
                raise

        return response
