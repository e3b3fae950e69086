"""ChatEdit 核心：对话规范化、文件块提取与变更应用。"""
