# ================================================================================
# Chat Routes
# ================================================================================
# Mounted under /api/v1: POST /chat/<chat_id> and POST /chatbot.
# ================================================================================

from flask import jsonify, g

from . import chat_bp
from .service import send_chat_message, ask_chatbot, message_store
from ..auth.decorators import token_required
from ..validation import validate, ChatMessageBody, ChatbotBody


@chat_bp.route('/chat/<chat_id>', methods=['POST'])
@validate(body=ChatMessageBody)
def chat(chat_id):
    data = g.body
    files = [f.model_dump() for f in data.files] if data.files else None
    user_message, ai_message = send_chat_message(chat_id, data.message_content, files)
    return jsonify({'userMessage': user_message, 'aiMessage': ai_message})


@chat_bp.route('/chat/<chat_id>', methods=['GET'])
def chat_history(chat_id):
    return jsonify({'success': True, 'messages': message_store.history(chat_id)})


@chat_bp.route('/chatbot', methods=['POST'])
@token_required
@validate(body=ChatbotBody)
def chatbot():
    response = ask_chatbot(g.body.message, g.body.context)
    return jsonify({'success': True, 'data': {'response': response}})
